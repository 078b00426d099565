# supplier_inventory/core/aggregate.py
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from supplier_inventory.core.assignments import SupplierAssignment
from supplier_inventory.core.risk import compute_assignment_risk
from supplier_inventory.models import RiskTier, UnknownSupplierPolicy

UNKNOWN_SUPPLIER_ID = '__unknown__'
UNKNOWN_SUPPLIER_NAME = 'Unknown supplier'

SORT_FIELDS = (
    'name', 'total_variants', 'primary_variants', 'out_of_stock',
    'critical', 'at_risk', 'needs_reorder', 'total_value'
)

class SupplierStats:
    """Per-supplier roll-up of variant risk."""

    def __init__(self, supplier_id: str, name: str):
        self.supplier_id = supplier_id
        self.name = name
        self.total_variants = 0
        self.primary_variants = 0
        self.out_of_stock = 0
        self.critical = 0
        self.at_risk = 0
        self.needs_reorder = 0
        self.total_value = 0.0

    def add(self, on_hand: int, assignment: SupplierAssignment, as_of: Optional[datetime] = None):
        """Accumulate one variant assignment into the counters."""
        record = compute_assignment_risk(on_hand, assignment, as_of=as_of)

        self.total_variants += 1
        if assignment.is_primary:
            self.primary_variants += 1

        if record.risk_tier is RiskTier.OUT_OF_STOCK:
            self.out_of_stock += 1
        elif record.risk_tier is RiskTier.CRITICAL:
            self.critical += 1
        if record.risk_tier.is_at_risk:
            self.at_risk += 1

        if record.needs_reorder:
            self.needs_reorder += 1

        self.total_value += record.on_hand * assignment.last_order_unit_cost

    def to_dict(self) -> Dict:
        return {
            'id': self.supplier_id,
            'name': self.name,
            'totalVariants': self.total_variants,
            'primaryVariants': self.primary_variants,
            'outOfStockVariants': self.out_of_stock,
            'criticalVariants': self.critical,
            'atRiskVariants': self.at_risk,
            'needsReorder': self.needs_reorder,
            'totalValue': self.total_value
        }

    def __repr__(self):
        return f"<SupplierStats {self.supplier_id} variants={self.total_variants} at_risk={self.at_risk}>"

def assignments_for_variant(
    assignments: Dict[str, List[SupplierAssignment]],
    variant
) -> List[SupplierAssignment]:
    """Assignment list of one variant from a mapping keyed by variant ID or SKU.

    The variant ID entry wins, so variants sharing a SKU keep their own lists.
    """
    variant_id = getattr(variant, 'variant_id', None)
    if variant_id and variant_id in assignments:
        return assignments[variant_id]
    return assignments.get(variant.sku) or []

def aggregate_supplier_stats(
    variants: Iterable,
    assignments_by_sku: Dict[str, List[SupplierAssignment]],
    suppliers: Iterable,
    unknown_supplier_policy: UnknownSupplierPolicy = UnknownSupplierPolicy.IGNORE,
    as_of: Optional[datetime] = None
) -> List[SupplierStats]:
    """Roll up variant risk per supplier.

    Every catalog supplier gets an entry, even without assignments. Every
    assignment of a variant counts, not only the primary one, using that
    assignment's own demand, threshold and lead time against the
    variant's on-hand quantity.

    Args:
        variants: Variant snapshots with ``sku`` and ``on_hand_quantity``
        assignments_by_sku: Parsed assignment lists keyed by SKU, or by
            variant ID where several variants share a SKU
        suppliers: Catalog records with ``supplier_id`` and ``supplier_name``
        unknown_supplier_policy: IGNORE drops assignments whose supplier is
            not in the catalog; BUCKET counts them under "Unknown supplier"
        as_of: Reference time for the underlying risk records

    Returns:
        List of SupplierStats in catalog order, unknown bucket last
    """
    stats = OrderedDict()
    for supplier in suppliers:
        if not supplier.supplier_id:
            continue
        stats[supplier.supplier_id] = SupplierStats(
            supplier.supplier_id, supplier.supplier_name or 'Unnamed'
        )

    unknown = None
    if unknown_supplier_policy is UnknownSupplierPolicy.BUCKET:
        unknown = SupplierStats(UNKNOWN_SUPPLIER_ID, UNKNOWN_SUPPLIER_NAME)

    for variant in variants:
        assignments = assignments_for_variant(assignments_by_sku, variant)
        if not assignments:
            continue

        on_hand = variant.on_hand_quantity or 0
        for assignment in assignments:
            accumulator = stats.get(assignment.supplier_id, unknown)
            if accumulator is None:
                continue
            accumulator.add(on_hand, assignment, as_of=as_of)

    result = list(stats.values())
    if unknown is not None:
        result.append(unknown)
    return result

def sort_supplier_stats(
    stats: List[SupplierStats],
    sort_by: str = 'total_variants',
    descending: bool = True
) -> List[SupplierStats]:
    """Sort supplier statistics by one of the named fields.

    Raises:
        ValueError for an unknown sort field
    """
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"Invalid sort field: {sort_by}. Valid fields are: {', '.join(SORT_FIELDS)}")

    if sort_by == 'name':
        key = lambda s: (s.name or '').lower()
    else:
        key = lambda s: getattr(s, sort_by)

    return sorted(stats, key=key, reverse=descending)

def summarize_totals(stats: Iterable[SupplierStats]) -> Dict:
    """Fleet totals across all supplier entries."""
    totals = {
        'total_variants': 0,
        'at_risk': 0,
        'needs_reorder': 0,
        'total_value': 0.0
    }
    for entry in stats:
        totals['total_variants'] += entry.total_variants
        totals['at_risk'] += entry.at_risk
        totals['needs_reorder'] += entry.needs_reorder
        totals['total_value'] += entry.total_value
    return totals
