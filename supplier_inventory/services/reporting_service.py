# supplier_inventory/services/reporting_service.py
import csv
import io
import math
from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from supplier_inventory.config import config
from supplier_inventory.core.aggregate import (
    SupplierStats, aggregate_supplier_stats, assignments_for_variant, sort_supplier_stats, summarize_totals
)
from supplier_inventory.core.assignments import SupplierAssignment, primary_assignment
from supplier_inventory.core.risk import ATTENTION_DAYS, compute_assignment_risk
from supplier_inventory.exceptions import ReportingError
from supplier_inventory.logging_setup import get_logger
from supplier_inventory.models import RiskTier, UnknownSupplierPolicy, Variant
from supplier_inventory.services.metafield_store import AssignmentRepository, MetafieldStore, SqlMetafieldStore
from supplier_inventory.services.supplier_service import SupplierService
from supplier_inventory.services.variant_service import VariantService

logger = get_logger('reporting_service')

RISK_REPORT_COLUMNS = [
    'risk_tier', 'sku', 'product_title', 'on_hand', 'daily_demand', 'threshold',
    'supplier_name', 'lead_time_days', 'annualized_demand', 'days_until_stockout',
    'projected_stockout_date', 'reorder_date', 'reorder_point', 'suggested_order_quantity'
]

RISK_SORT_FIELDS = (
    'days_until_stockout', 'sku', 'product_title', 'on_hand', 'daily_demand',
    'threshold', 'lead_time_days', 'reorder_point', 'suggested_order_quantity', 'risk_tier'
)

class ReportingService:
    """Service for risk reports, supplier statistics and reorder suggestions."""

    def __init__(self, session: Session, store: Optional[MetafieldStore] = None):
        """Initialize the reporting service.

        Args:
            session: Database session
            store: Metafield store holding supplier assignments
                (defaults to the local metafield table)
        """
        self.session = session
        self.assignments = AssignmentRepository(store or SqlMetafieldStore(session))
        self.variant_service = VariantService(session)
        self.supplier_service = SupplierService(session)

    def _load(self):
        variants = self.variant_service.get_all_variants()
        return variants, self.assignments.assignments_by_variant(variants)

    def variant_risk(
        self,
        variant: Variant,
        assignments: List[SupplierAssignment],
        supplier_names: Dict[str, str],
        as_of: Optional[datetime] = None
    ) -> Dict:
        """Risk query result for one variant, based on its primary supplier.

        A variant without assignments is reported with all-zero parameters.

        Args:
            variant: Variant snapshot
            assignments: Normalized assignment list of the variant
            supplier_names: Mapping of supplier ID to name
            as_of: Reference time for the projected stockout date

        Returns:
            Dictionary with the risk record fields plus ``sku``,
            ``product_title`` and ``supplier_name``
        """
        primary = primary_assignment(assignments) or SupplierAssignment(supplier_id='')
        record = compute_assignment_risk(variant.on_hand_quantity, primary, sku=variant.sku, as_of=as_of)

        supplier_name = supplier_names.get(primary.supplier_id, '') if primary.supplier_id else ''
        if len(assignments) > 1:
            supplier_name += f" (+{len(assignments) - 1} more)"

        result = record.to_dict()
        result.update({
            'variant_id': variant.variant_id,
            'product_title': variant.product_title,
            'supplier_id': primary.supplier_id,
            'supplier_name': supplier_name,
            'supplier_count': len(assignments)
        })
        return result

    def risk_report(
        self,
        risk_tiers: Optional[List[RiskTier]] = None,
        sort_by: str = 'days_until_stockout',
        descending: bool = False,
        as_of: Optional[datetime] = None
    ) -> List[Dict]:
        """Risk query results for every variant.

        Args:
            risk_tiers: Optional tiers to keep
            sort_by: Field to sort on
            descending: Sort direction
            as_of: Reference time for projected stockout dates

        Returns:
            List of risk query result dictionaries
        """
        if sort_by not in RISK_SORT_FIELDS:
            raise ReportingError(f"Invalid sort field: {sort_by}")

        variants, assignments_by_variant = self._load()
        supplier_names = self.supplier_service.get_supplier_names()

        rows = []
        for variant in variants:
            assignments = assignments_for_variant(assignments_by_variant, variant)
            row = self.variant_risk(variant, assignments, supplier_names, as_of)
            if risk_tiers and RiskTier(row['risk_tier']) not in risk_tiers:
                continue
            rows.append(row)

        rows.sort(key=lambda row: _sort_value(row, sort_by), reverse=descending)
        logger.info(f"Risk report generated for {len(rows)} of {len(variants)} variants")
        return rows

    def supplier_stats(
        self,
        sort_by: str = 'total_variants',
        descending: bool = True,
        unknown_supplier_policy: Optional[UnknownSupplierPolicy] = None,
        as_of: Optional[datetime] = None
    ) -> List[SupplierStats]:
        """Per-supplier statistics across all variants.

        Args:
            sort_by: SupplierStats field to sort on
            descending: Sort direction
            unknown_supplier_policy: Override of the configured policy
            as_of: Reference time for the underlying risk records

        Returns:
            List of SupplierStats
        """
        if unknown_supplier_policy is None:
            unknown_supplier_policy = UnknownSupplierPolicy.from_string(
                config.aggregation_config['unknown_supplier_policy']
            )

        variants, assignments_by_variant = self._load()
        stats = aggregate_supplier_stats(
            variants,
            assignments_by_variant,
            self.supplier_service.get_all_suppliers(),
            unknown_supplier_policy=unknown_supplier_policy,
            as_of=as_of
        )
        return sort_supplier_stats(stats, sort_by, descending)

    def supplier_dashboard(self, **kwargs) -> Dict:
        """Supplier statistics together with fleet totals."""
        stats = self.supplier_stats(**kwargs)
        return {
            'suppliers': [entry.to_dict() for entry in stats],
            'totals': summarize_totals(stats)
        }

    def purchase_order_suggestions(
        self,
        supplier_id: Optional[str] = None,
        as_of: Optional[datetime] = None
    ) -> List[Dict]:
        """Lines to reorder, one per variant and supplier assignment.

        A line is included when on-hand is at or below the reorder point or
        stockout is 30 days away or less.

        Args:
            supplier_id: Optional supplier filter
            as_of: Reference time for the underlying risk records

        Returns:
            Lines sorted by days until stockout, most urgent first
        """
        variants, assignments_by_variant = self._load()
        supplier_names = self.supplier_service.get_supplier_names()

        lines = []
        for variant in variants:
            for assignment in assignments_for_variant(assignments_by_variant, variant):
                if supplier_id and assignment.supplier_id != supplier_id:
                    continue

                record = compute_assignment_risk(variant.on_hand_quantity, assignment, sku=variant.sku, as_of=as_of)
                if not (record.needs_reorder or record.days_until_stockout <= ATTENTION_DAYS):
                    continue

                recommended_quantity = int(math.ceil(record.suggested_order_quantity))
                lines.append({
                    'variant_id': variant.variant_id,
                    'sku': variant.sku,
                    'product_title': variant.product_title,
                    'variant_title': variant.variant_title,
                    'supplier_id': assignment.supplier_id,
                    'supplier_name': supplier_names.get(assignment.supplier_id, 'Unknown'),
                    'on_hand': record.on_hand,
                    'threshold': record.threshold,
                    'daily_demand': record.daily_demand,
                    'lead_time_days': record.lead_time_days,
                    'days_until_stockout': record.days_until_stockout,
                    'reorder_point': record.reorder_point,
                    'risk_tier': record.risk_tier.value,
                    'recommended_quantity': recommended_quantity,
                    'last_order_cpu': assignment.last_order_unit_cost,
                    'estimated_cost': recommended_quantity * assignment.last_order_unit_cost,
                    'is_primary': assignment.is_primary
                })

        lines.sort(key=lambda line: line['days_until_stockout'])
        logger.info(f"Generated {len(lines)} purchase order suggestion(s)")
        return lines

    def export_risk_report_csv(self, rows: List[Dict], output: Optional[Union[str, io.TextIOBase]] = None) -> str:
        """Export risk report rows as CSV.

        Args:
            rows: Rows returned by risk_report
            output: Optional file path or text stream to write to

        Returns:
            The CSV text
        """
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=RISK_REPORT_COLUMNS, extrasaction='ignore')
        writer.writeheader()
        for row in rows:
            exported = dict(row)
            if exported.get('days_until_stockout') is not None:
                exported['days_until_stockout'] = int(exported['days_until_stockout'])
            writer.writerow(exported)

        text = buffer.getvalue()
        if isinstance(output, str):
            with open(output, 'w', newline='') as f:
                f.write(text)
            logger.info(f"Risk report exported to {output}")
        elif output is not None:
            output.write(text)

        return text

def _sort_value(row: Dict, sort_by: str):
    value = row.get(sort_by)
    if sort_by == 'days_until_stockout' and value is None:
        return math.inf
    if sort_by == 'risk_tier':
        return RiskTier(value).rank
    if isinstance(value, str):
        return value.lower()
    return value if value is not None else ''
