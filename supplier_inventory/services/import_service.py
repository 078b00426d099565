# supplier_inventory/services/import_service.py
"""Bulk import of variant-supplier assignments from CSV or JSON.

An import run moves through PARSED, GROUPED, VALIDATED and COMMITTED.
Rows are grouped by SKU, each group is normalized to exactly one primary
supplier, validated against the variant snapshot and the supplier
catalog, and written as one JSON list per variant. Problems with a group
are recorded in the result and never stop the rest of the batch; only
input that cannot be parsed at all raises.
"""
import csv
import io
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from supplier_inventory.config import config
from supplier_inventory.core.assignments import SupplierAssignment, dump_assignments, normalize
from supplier_inventory.exceptions import ExternalWriteError, LocalValidationSkip, MalformedInputError
from supplier_inventory.logging_setup import get_logger, logger as log_manager
from supplier_inventory.models import ImportStage, RowOutcome, Variant
from supplier_inventory.services.metafield_store import MetafieldStore, SqlMetafieldStore
from supplier_inventory.services.supplier_service import SupplierService
from supplier_inventory.services.variant_service import VariantService
from supplier_inventory.utils.parsing import clean_text
from supplier_inventory.utils.retry import RetryPolicy

logger = get_logger('import_service')

# Canonical field -> accepted column names / JSON keys, file column name first
COLUMN_ALIASES = OrderedDict([
    ('sku', ('SKU', 'sku')),
    ('supplier_id', ('SupplierID', 'supplier_id')),
    ('mpn', ('MPN', 'mpn')),
    ('is_primary', ('IsPrimary', 'is_primary')),
    ('lead_time', ('LeadTime', 'lead_time')),
    ('threshold', ('Threshold', 'threshold')),
    ('daily_demand', ('DailyDemand', 'daily_demand')),
    ('last_order_date', ('LastOrderDate', 'last_order_date')),
    ('last_order_cpu', ('LastOrderCPU', 'last_order_cpu')),
    ('last_order_quantity', ('LastOrderQty', 'last_order_quantity')),
    ('notes', ('Notes', 'notes')),
])

SKU_NOT_FOUND = "SKU not found"
IMPORT_CANCELLED = "Import cancelled"

class ImportRow:
    """One parsed row of an import file."""

    def __init__(self, sku: str, supplier_id: str, fields: Dict[str, Any], line_number: Optional[int] = None):
        self.sku = sku
        self.supplier_id = supplier_id
        self.fields = fields
        self.line_number = line_number

    @classmethod
    def from_record(cls, record: Dict[str, Any], line_number: Optional[int] = None) -> Optional['ImportRow']:
        """Build a row from a CSV record or JSON object.

        Returns:
            ImportRow, or None when SKU or supplier ID is missing
        """
        fields = {}
        for field, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in record and record[alias] is not None:
                    fields[field] = record[alias]
                    break

        sku = clean_text(fields.pop('sku', None))
        supplier_id = clean_text(fields.pop('supplier_id', None))
        if not sku or not supplier_id:
            return None

        return cls(sku, supplier_id, fields, line_number)

    def to_assignment(self) -> SupplierAssignment:
        """Convert the row into a supplier assignment."""
        data = dict(self.fields)
        data['supplier_id'] = self.supplier_id
        return SupplierAssignment.from_dict(data)

    def __repr__(self):
        return f"<ImportRow {self.sku}/{self.supplier_id} line={self.line_number}>"


class ImportBatch:
    """Import rows grouped by SKU, each group normalized to one primary supplier."""

    def __init__(self, total_rows: int = 0, dropped_rows: int = 0):
        self.groups = OrderedDict()
        self.total_rows = total_rows
        self.dropped_rows = dropped_rows

    @property
    def skus(self) -> List[str]:
        return list(self.groups.keys())

    def __len__(self):
        return len(self.groups)


class ImportBatchResult:
    """Outcome of one import run, one entry per SKU group."""

    def __init__(self, total_groups: int = 0, total_rows: int = 0, dropped_rows: int = 0, dry_run: bool = False):
        self.success = []
        self.skipped = []
        self.failed = []
        self.outcomes = OrderedDict()
        self.total_groups = total_groups
        self.total_rows = total_rows
        self.dropped_rows = dropped_rows
        self.dry_run = dry_run
        self.cancelled = False
        self.stage = ImportStage.PENDING

    def add_success(self, sku: str, variant_id: str, supplier_count: int):
        self.success.append({'sku': sku, 'variantId': variant_id, 'supplierCount': supplier_count})
        self.outcomes[sku] = RowOutcome.SUCCESS

    def add_skipped(self, sku: str, reason: str):
        self.skipped.append({'sku': sku, 'reason': reason})
        self.outcomes[sku] = RowOutcome.SKIPPED

    def add_failed(self, sku: str, error: str):
        self.failed.append({'sku': sku, 'error': error})
        self.outcomes[sku] = RowOutcome.FAILED

    def summary(self) -> str:
        return (
            f"{len(self.success)} succeeded, {len(self.skipped)} skipped, "
            f"{len(self.failed)} failed of {self.total_groups} SKU(s) from {self.total_rows} row(s)"
        )

    def to_dict(self) -> Dict:
        """Bulk import result in its JSON shape."""
        return {
            'success': list(self.success),
            'skipped': list(self.skipped),
            'failed': list(self.failed),
            'totalSKUs': self.total_groups,
            'totalRows': self.total_rows,
            'droppedRows': self.dropped_rows,
            'cancelled': self.cancelled,
            'dryRun': self.dry_run,
            'stage': self.stage.value
        }


def parse_csv(content) -> Tuple[List[ImportRow], int]:
    """Parse delimited text with quoted fields into import rows.

    Args:
        content: CSV text or bytes; the first non-blank line is the header

    Returns:
        Tuple of (rows, number of rows dropped for missing SKU or supplier ID)

    Raises:
        MalformedInputError if the input is empty or the header lacks the
        SKU and SupplierID columns
    """
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise MalformedInputError("Import file is not valid UTF-8 text")

    if content is None or not content.strip():
        raise MalformedInputError("Import file is empty")

    content = content.lstrip('\ufeff')
    try:
        records = [record for record in csv.reader(io.StringIO(content)) if any(value.strip() for value in record)]
    except csv.Error as e:
        raise MalformedInputError(f"Unable to parse CSV: {str(e)}")

    if not records:
        raise MalformedInputError("Import file is empty")

    header = [column.strip() for column in records[0]]
    if not _has_column(header, 'sku') or not _has_column(header, 'supplier_id'):
        raise MalformedInputError(
            "Import file has no header with SKU and SupplierID columns",
            details={'header': header}
        )

    rows = []
    dropped = 0
    for line_number, values in enumerate(records[1:], start=2):
        record = {}
        for index, column in enumerate(header):
            record[column] = values[index].strip() if index < len(values) else ''

        row = ImportRow.from_record(record, line_number)
        if row is None:
            dropped += 1
            continue
        rows.append(row)

    return rows, dropped

def parse_json(payload) -> Tuple[List[ImportRow], int]:
    """Parse a JSON array of row objects into import rows.

    Accepts a bare array or an object wrapping it as ``variantSuppliers``.

    Returns:
        Tuple of (rows, number of entries dropped)

    Raises:
        MalformedInputError for invalid JSON or an unexpected shape
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise MalformedInputError("Import file is not valid UTF-8 text")

    if isinstance(payload, str):
        if not payload.strip():
            raise MalformedInputError("Import file is empty")
        try:
            payload = json.loads(payload.lstrip('\ufeff'))
        except ValueError as e:
            raise MalformedInputError(f"Invalid JSON: {str(e)}")

    if isinstance(payload, dict) and 'variantSuppliers' in payload:
        payload = payload['variantSuppliers']

    if not isinstance(payload, list):
        raise MalformedInputError("Invalid request. Expected a JSON array of variant supplier rows")

    rows = []
    dropped = 0
    for index, record in enumerate(payload, start=1):
        row = ImportRow.from_record(record, index) if isinstance(record, dict) else None
        if row is None:
            dropped += 1
            continue
        rows.append(row)

    return rows, dropped

def _has_column(header: List[str], field: str) -> bool:
    return any(alias in header for alias in COLUMN_ALIASES[field])

def group_rows(rows: List[ImportRow], dropped_rows: int = 0) -> ImportBatch:
    """Group rows by SKU in first-seen order and normalize each group."""
    batch = ImportBatch(total_rows=len(rows), dropped_rows=dropped_rows)
    for row in rows:
        batch.groups.setdefault(row.sku, []).append(row.to_assignment())

    for sku in batch.groups:
        batch.groups[sku] = normalize(batch.groups[sku])

    return batch


class ImportReconciler:
    """Reconciles an external assignment feed with the variant snapshot and supplier catalog."""

    def __init__(
        self,
        session: Session,
        store: Optional[MetafieldStore] = None,
        retry_policy: Optional[RetryPolicy] = None,
        write_delay_ms: Optional[int] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        """Initialize the reconciler.

        Args:
            session: Database session for the variant snapshot and catalog
            store: Metafield store receiving the assignment lists
                (defaults to the local metafield table)
            retry_policy: Retry policy for store writes (defaults to configuration)
            write_delay_ms: Pause between group writes (defaults to configuration)
            sleep: Sleep function, replaceable in tests
        """
        import_config = config.import_config

        self.session = session
        self.store = store or SqlMetafieldStore(session)
        self.sleep = sleep or time.sleep
        self.retry_policy = retry_policy or RetryPolicy.from_config(import_config, sleep=self.sleep)
        self.write_delay_ms = import_config['write_delay_ms'] if write_delay_ms is None else write_delay_ms
        self.namespace = import_config['namespace']
        self.key = import_config['key']
        self.variant_service = VariantService(session)
        self.supplier_service = SupplierService(session)
        self._cancel_event = threading.Event()

    def cancel(self):
        """Stop the current run before its next group commit.

        Committed groups stay committed. The flag is cleared when the next
        run starts.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def parse(self, content, input_format: str = 'csv') -> Tuple[List[ImportRow], int]:
        """Parse import content in the given format ('csv' or 'json')."""
        input_format = (input_format or 'csv').lower()
        if input_format == 'csv':
            return parse_csv(content)
        if input_format == 'json':
            return parse_json(content)
        raise MalformedInputError(f"Unsupported import format: {input_format}")

    def validate_group(
        self,
        sku: str,
        assignments: List[SupplierAssignment],
        variant_index: Dict[str, Variant],
        supplier_ids
    ) -> Variant:
        """Check one SKU group against the variant snapshot and supplier catalog.

        Returns:
            The variant the group belongs to

        Raises:
            LocalValidationSkip if the SKU or any supplier ID is unknown
        """
        variant = variant_index.get(sku)
        if variant is None:
            raise LocalValidationSkip(SKU_NOT_FOUND, details={'sku': sku})

        unknown = []
        for assignment in assignments:
            if assignment.supplier_id not in supplier_ids and assignment.supplier_id not in unknown:
                unknown.append(assignment.supplier_id)

        if unknown:
            raise LocalValidationSkip(
                f"Unknown supplier IDs: {', '.join(unknown)}",
                details={'sku': sku, 'supplier_ids': unknown}
            )

        return variant

    def commit_group(self, variant: Variant, assignments: List[SupplierAssignment]) -> None:
        """Write one group's full assignment list to the store, retrying throttled writes."""
        self.retry_policy.call(
            self.store.set,
            variant.variant_id,
            self.namespace,
            self.key,
            dump_assignments(assignments)
        )

    def run(self, content, input_format: str = 'csv', dry_run: bool = False) -> ImportBatchResult:
        """Run a full import.

        Args:
            content: File content (text, bytes, or decoded JSON)
            input_format: 'csv' or 'json'
            dry_run: Validate only, without writing anything

        Returns:
            ImportBatchResult

        Raises:
            MalformedInputError if the input cannot be parsed; nothing is written
        """
        self._cancel_event.clear()
        with log_manager.run_log('import_assignments', format=input_format, dry_run=dry_run) as run:
            result = self._run(content, input_format, dry_run)
            run.finish(success=not result.failed, summary=result.summary())
        return result

    def _run(self, content, input_format: str, dry_run: bool) -> ImportBatchResult:
        try:
            rows, dropped = self.parse(content, input_format)
        except MalformedInputError as e:
            logger.error(f"Import aborted: {e}")
            raise

        logger.info(f"Parsed {len(rows)} row(s), dropped {dropped} without SKU or supplier ID")
        result = ImportBatchResult(total_rows=len(rows), dropped_rows=dropped, dry_run=dry_run)
        result.stage = ImportStage.PARSED

        batch = group_rows(rows, dropped)
        logger.info(f"Grouped into {len(batch)} unique SKUs")
        result.total_groups = len(batch)
        result.stage = ImportStage.GROUPED

        variant_index = self.variant_service.build_sku_index()
        supplier_ids = self.supplier_service.get_supplier_ids()
        logger.info(f"Validating against {len(variant_index)} variants and {len(supplier_ids)} suppliers")

        valid_groups = []
        for sku, assignments in batch.groups.items():
            try:
                variant = self.validate_group(sku, assignments, variant_index, supplier_ids)
            except LocalValidationSkip as e:
                logger.info(f"Skipped {sku}: {e.message}")
                result.add_skipped(sku, e.message)
                continue
            valid_groups.append((sku, variant, assignments))

        result.stage = ImportStage.VALIDATED

        if dry_run:
            for sku, variant, assignments in valid_groups:
                result.add_success(sku, variant.variant_id, len(assignments))
            logger.info(f"Dry run complete: {result.summary()}")
            return result

        for position, (sku, variant, assignments) in enumerate(valid_groups):
            if self.cancelled:
                result.cancelled = True
                result.add_skipped(sku, IMPORT_CANCELLED)
                continue

            if position > 0 and self.write_delay_ms > 0:
                self.sleep(self.write_delay_ms / 1000.0)

            try:
                self.commit_group(variant, assignments)
            except ExternalWriteError as e:
                logger.error(f"Failed to import {sku}: {e}")
                result.add_failed(sku, e.message)
                continue
            except Exception as e:
                logger.error(f"Unexpected error importing {sku}: {str(e)}", exc_info=True)
                result.add_failed(sku, str(e))
                continue

            result.add_success(sku, variant.variant_id, len(assignments))
            logger.info(f"Imported: {sku} ({len(assignments)} supplier(s))")

        result.stage = ImportStage.COMMITTED
        logger.info(f"Import complete: {result.summary()}")
        return result
