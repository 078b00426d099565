# supplier_inventory/core/assignments.py
"""Supplier assignments of a product variant and the primary-supplier invariant.

A non-empty assignment list always has exactly one primary assignment.
Every operation here is a pure list transform returning new assignment
objects; persisting the result is up to the caller.
"""
import json
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

from supplier_inventory.exceptions import AssignmentError
from supplier_inventory.logging_setup import get_logger
from supplier_inventory.utils.parsing import (
    clean_text, parse_bool, parse_date, parse_non_negative_int, parse_non_negative_number
)

logger = get_logger('assignments')

class SupplierAssignment:
    """One (variant, supplier) pairing with its replenishment parameters."""

    def __init__(
        self,
        supplier_id: str,
        manufacturer_part_number: str = '',
        lead_time_days: int = 0,
        reorder_threshold: int = 0,
        daily_demand: float = 0.0,
        last_order_date: Optional[date] = None,
        last_order_unit_cost: float = 0.0,
        last_order_quantity: int = 0,
        notes: str = '',
        is_primary: bool = False
    ):
        self.supplier_id = supplier_id
        self.manufacturer_part_number = manufacturer_part_number
        self.lead_time_days = lead_time_days
        self.reorder_threshold = reorder_threshold
        self.daily_demand = daily_demand
        self.last_order_date = last_order_date
        self.last_order_unit_cost = last_order_unit_cost
        self.last_order_quantity = last_order_quantity
        self.notes = notes
        self.is_primary = is_primary

    def copy(self, **changes) -> 'SupplierAssignment':
        """Return a copy with the given attributes replaced."""
        values = {
            'supplier_id': self.supplier_id,
            'manufacturer_part_number': self.manufacturer_part_number,
            'lead_time_days': self.lead_time_days,
            'reorder_threshold': self.reorder_threshold,
            'daily_demand': self.daily_demand,
            'last_order_date': self.last_order_date,
            'last_order_unit_cost': self.last_order_unit_cost,
            'last_order_quantity': self.last_order_quantity,
            'notes': self.notes,
            'is_primary': self.is_primary
        }
        values.update(changes)
        return SupplierAssignment(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted JSON shape, using the keys of existing supplier_data blobs."""
        return {
            'supplier_id': self.supplier_id,
            'mpn': self.manufacturer_part_number,
            'is_primary': self.is_primary,
            'lead_time': self.lead_time_days,
            'threshold': self.reorder_threshold,
            'daily_demand': self.daily_demand,
            'last_order_date': self.last_order_date.isoformat() if self.last_order_date else '',
            'last_order_cpu': self.last_order_unit_cost,
            'last_order_quantity': self.last_order_quantity,
            'notes': self.notes
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SupplierAssignment':
        """Build an assignment from a persisted or submitted dictionary.

        Numeric fields go through the non-negative parsers, so malformed
        values read as 0 instead of raising.
        """
        def pick(*keys):
            for key in keys:
                if data.get(key) not in (None, ''):
                    return data[key]
            return None

        return cls(
            supplier_id=clean_text(pick('supplier_id')),
            manufacturer_part_number=clean_text(pick('mpn', 'manufacturer_part_number')),
            lead_time_days=parse_non_negative_int(pick('lead_time', 'lead_time_days')),
            reorder_threshold=parse_non_negative_int(pick('threshold', 'reorder_threshold')),
            daily_demand=parse_non_negative_number(pick('daily_demand')),
            last_order_date=parse_date(pick('last_order_date')),
            last_order_unit_cost=parse_non_negative_number(pick('last_order_cpu', 'last_order_unit_cost')),
            last_order_quantity=parse_non_negative_int(pick('last_order_quantity', 'last_order_qty')),
            notes=clean_text(pick('notes')),
            is_primary=parse_bool(pick('is_primary'))
        )

    def __eq__(self, other):
        if not isinstance(other, SupplierAssignment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        flag = ' primary' if self.is_primary else ''
        return f"<SupplierAssignment {self.supplier_id}{flag}>"


class LegacySingle:
    """Persisted blob in the old shape: one assignment object."""

    def __init__(self, record: Dict[str, Any]):
        self.record = record


class AssignmentList:
    """Persisted blob in the current shape: an array of assignment objects."""

    def __init__(self, records: List[Dict[str, Any]]):
        self.records = records


def normalize(assignments: Iterable[SupplierAssignment]) -> List[SupplierAssignment]:
    """Enforce exactly one primary assignment.

    With no primary the first assignment becomes primary; with several,
    only the last one marked primary keeps the flag.

    Args:
        assignments: Assignments in list order

    Returns:
        New list of copies satisfying the invariant
    """
    result = [assignment.copy() for assignment in assignments]
    if not result:
        return result

    primary_indexes = [i for i, assignment in enumerate(result) if assignment.is_primary]
    keep = primary_indexes[-1] if primary_indexes else 0

    for i, assignment in enumerate(result):
        assignment.is_primary = (i == keep)

    return result

def add_or_update(
    assignments: List[SupplierAssignment],
    assignment: SupplierAssignment,
    index: Optional[int] = None
) -> List[SupplierAssignment]:
    """Replace the assignment at ``index`` or append a new one.

    An incoming primary demotes every other assignment.

    Raises:
        AssignmentError if ``index`` is out of range
    """
    result = [existing.copy() for existing in assignments]
    incoming = assignment.copy()

    if index is not None and not 0 <= index < len(result):
        raise AssignmentError(
            f"Assignment index {index} out of range for {len(result)} assignment(s)",
            details={'index': index, 'size': len(result)}
        )

    if incoming.is_primary:
        for existing in result:
            existing.is_primary = False

    if index is None:
        result.append(incoming)
    else:
        result[index] = incoming

    return normalize(result)

def remove(assignments: List[SupplierAssignment], index: int) -> List[SupplierAssignment]:
    """Delete one assignment, promoting the new first entry if the primary was removed.

    Raises:
        AssignmentError if ``index`` is out of range
    """
    if not 0 <= index < len(assignments):
        raise AssignmentError(
            f"Assignment index {index} out of range for {len(assignments)} assignment(s)",
            details={'index': index, 'size': len(assignments)}
        )

    result = [existing.copy() for i, existing in enumerate(assignments) if i != index]
    if assignments[index].is_primary and result:
        for existing in result:
            existing.is_primary = False
        result[0].is_primary = True

    return normalize(result)

def primary_assignment(assignments: List[SupplierAssignment]) -> Optional[SupplierAssignment]:
    """Return the primary assignment, falling back to the first one."""
    for assignment in assignments:
        if assignment.is_primary:
            return assignment
    return assignments[0] if assignments else None

def decode_blob(raw: Any) -> Optional[Union[LegacySingle, AssignmentList]]:
    """Decode a persisted supplier_data value into its tagged shape.

    Args:
        raw: JSON text, bytes, or an already decoded object or list

    Returns:
        LegacySingle, AssignmentList, or None when there is nothing usable
    """
    if raw is None:
        return None

    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='replace')

    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring supplier data that is not valid JSON")
            return None

    if isinstance(raw, dict):
        return LegacySingle(raw)

    if isinstance(raw, list):
        records = [record for record in raw if isinstance(record, dict)]
        if len(records) != len(raw):
            logger.warning(f"Ignoring {len(raw) - len(records)} non-object supplier data entries")
        return AssignmentList(records)

    logger.warning(f"Ignoring supplier data of unexpected type {type(raw).__name__}")
    return None

def upconvert(blob: Optional[Union[LegacySingle, AssignmentList]]) -> List[SupplierAssignment]:
    """Turn either persisted shape into a normalized assignment list."""
    if blob is None:
        return []

    if isinstance(blob, LegacySingle):
        return [SupplierAssignment.from_dict(blob.record).copy(is_primary=True)]

    return normalize(SupplierAssignment.from_dict(record) for record in blob.records)

def load_assignments(raw: Any) -> List[SupplierAssignment]:
    """Read boundary for persisted supplier data: decode, upconvert, normalize."""
    return upconvert(decode_blob(raw))

def dump_assignments(assignments: List[SupplierAssignment]) -> str:
    """Serialize assignments in the current (array) shape."""
    return json.dumps([assignment.to_dict() for assignment in assignments])
