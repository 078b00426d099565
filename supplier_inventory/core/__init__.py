from .risk import (
    RiskRecord, compute_risk, compute_assignment_risk, classify_risk_tier,
    calculate_days_until_stockout, calculate_reorder_point,
    calculate_suggested_order_quantity, SAFETY_DAYS
)
from .assignments import (
    SupplierAssignment, LegacySingle, AssignmentList, normalize, add_or_update,
    remove, primary_assignment, decode_blob, upconvert, load_assignments,
    dump_assignments
)
from .aggregate import (
    SupplierStats, aggregate_supplier_stats, assignments_for_variant, sort_supplier_stats,
    summarize_totals
)

__all__ = [
    'RiskRecord',
    'compute_risk',
    'compute_assignment_risk',
    'classify_risk_tier',
    'calculate_days_until_stockout',
    'calculate_reorder_point',
    'calculate_suggested_order_quantity',
    'SAFETY_DAYS',
    'SupplierAssignment',
    'LegacySingle',
    'AssignmentList',
    'normalize',
    'add_or_update',
    'remove',
    'primary_assignment',
    'decode_blob',
    'upconvert',
    'load_assignments',
    'dump_assignments',
    'SupplierStats',
    'aggregate_supplier_stats',
    'assignments_for_variant',
    'sort_supplier_stats',
    'summarize_totals'
]
