# supplier_inventory/core/risk.py
import math
from datetime import datetime, timedelta
from typing import Dict, Optional

from supplier_inventory.models import RiskTier
from supplier_inventory.utils.parsing import parse_int, parse_non_negative_int, parse_non_negative_number

# Fixed buffer of demand coverage added on top of the lead time
SAFETY_DAYS = 7

# Upper bounds (inclusive) in days until stockout for each tier
CRITICAL_DAYS = 7
WARNING_DAYS = 14
ATTENTION_DAYS = 30

DAYS_PER_YEAR = 365

class RiskRecord:
    """Inventory risk of one variant against one supplier's parameters."""

    def __init__(
        self,
        sku: Optional[str],
        on_hand: int,
        daily_demand: float,
        threshold: int,
        lead_time_days: int,
        annualized_demand: float,
        days_until_stockout: float,
        projected_stockout_date: Optional[datetime],
        reorder_date: Optional[datetime],
        reorder_point: float,
        suggested_order_quantity: float,
        risk_tier: RiskTier
    ):
        self.sku = sku
        self.on_hand = on_hand
        self.daily_demand = daily_demand
        self.threshold = threshold
        self.lead_time_days = lead_time_days
        self.annualized_demand = annualized_demand
        self.days_until_stockout = days_until_stockout
        self.projected_stockout_date = projected_stockout_date
        self.reorder_date = reorder_date
        self.reorder_point = reorder_point
        self.suggested_order_quantity = suggested_order_quantity
        self.risk_tier = risk_tier

    @property
    def needs_reorder(self) -> bool:
        """Whether on-hand stock is at or below the reorder point."""
        return self.on_hand <= self.reorder_point

    @property
    def days_until_stockout_display(self) -> Optional[int]:
        """Whole days until stockout, truncated toward zero; None when never."""
        if math.isinf(self.days_until_stockout):
            return None
        return int(self.days_until_stockout)

    def to_dict(self) -> Dict:
        """Convert the record to a JSON-friendly dictionary.

        Infinite days until stockout are reported as None.
        """
        return {
            'sku': self.sku,
            'on_hand': self.on_hand,
            'daily_demand': self.daily_demand,
            'threshold': self.threshold,
            'lead_time_days': self.lead_time_days,
            'annualized_demand': self.annualized_demand,
            'days_until_stockout': None if math.isinf(self.days_until_stockout) else self.days_until_stockout,
            'projected_stockout_date': (
                self.projected_stockout_date.date().isoformat()
                if self.projected_stockout_date else None
            ),
            'reorder_date': self.reorder_date.date().isoformat() if self.reorder_date else None,
            'reorder_point': self.reorder_point,
            'suggested_order_quantity': self.suggested_order_quantity,
            'risk_tier': self.risk_tier.value
        }

    def __repr__(self):
        return (
            f"<RiskRecord {self.sku} days={self.days_until_stockout} "
            f"tier={self.risk_tier.value}>"
        )

def classify_risk_tier(days_until_stockout: float) -> RiskTier:
    """Map days until stockout onto the canonical tier table.

    Args:
        days_until_stockout: Real-valued days, possibly infinite

    Returns:
        RiskTier; every real or infinite value maps to exactly one tier
    """
    if days_until_stockout is None or math.isnan(days_until_stockout):
        return RiskTier.LOW
    if days_until_stockout < 0:
        return RiskTier.OUT_OF_STOCK
    if days_until_stockout <= CRITICAL_DAYS:
        return RiskTier.CRITICAL
    if days_until_stockout <= WARNING_DAYS:
        return RiskTier.WARNING
    if days_until_stockout <= ATTENTION_DAYS:
        return RiskTier.ATTENTION
    return RiskTier.LOW

def calculate_days_until_stockout(on_hand: int, daily_demand: float, threshold: int) -> float:
    """Days of demand the stock above threshold covers.

    Returns:
        Infinity when there is no demand, 0 when on-hand is at or under
        the threshold, otherwise the fractional number of days
    """
    if daily_demand <= 0:
        return math.inf
    if on_hand <= threshold:
        return 0.0
    return (on_hand - threshold) / daily_demand

def calculate_reorder_point(daily_demand: float, threshold: int, lead_time_days: int) -> float:
    """On-hand level at or below which a new order should be placed."""
    return threshold + daily_demand * lead_time_days

def calculate_suggested_order_quantity(
    on_hand: int,
    daily_demand: float,
    threshold: int,
    lead_time_days: int
) -> float:
    """Quantity covering lead time plus the safety buffer above threshold."""
    return max(0.0, daily_demand * (lead_time_days + SAFETY_DAYS) + threshold - on_hand)

def compute_risk(
    on_hand,
    daily_demand,
    threshold,
    lead_time_days,
    sku: Optional[str] = None,
    as_of: Optional[datetime] = None
) -> RiskRecord:
    """Compute the inventory risk record for one variant.

    Never raises: missing, non-numeric, NaN or negative demand, threshold
    and lead time read as 0, and a missing on-hand quantity reads as 0.

    Args:
        on_hand: Units on hand
        daily_demand: Units sold per day
        threshold: Minimum stock to maintain
        lead_time_days: Supplier lead time in days
        sku: Optional SKU carried into the record
        as_of: Reference time for the projected stockout date (defaults to now)

    Returns:
        RiskRecord
    """
    on_hand = parse_int(on_hand)
    daily_demand = parse_non_negative_number(daily_demand)
    if math.isinf(daily_demand):
        daily_demand = 0.0
    threshold = parse_non_negative_int(threshold)
    lead_time_days = parse_non_negative_int(lead_time_days)

    days_until_stockout = calculate_days_until_stockout(on_hand, daily_demand, threshold)

    projected_stockout_date = None
    if not math.isinf(days_until_stockout):
        try:
            projected_stockout_date = (as_of or datetime.now()) + timedelta(days=days_until_stockout)
        except OverflowError:
            # Beyond datetime.max; treat like "never"
            projected_stockout_date = None

    # Last day to order for delivery before stockout
    reorder_date = None
    if projected_stockout_date is not None:
        try:
            reorder_date = projected_stockout_date - timedelta(days=lead_time_days)
        except OverflowError:
            reorder_date = None

    risk_tier = classify_risk_tier(days_until_stockout)
    if daily_demand > 0 and on_hand <= 0:
        risk_tier = RiskTier.OUT_OF_STOCK

    return RiskRecord(
        sku=sku,
        on_hand=on_hand,
        daily_demand=daily_demand,
        threshold=threshold,
        lead_time_days=lead_time_days,
        annualized_demand=daily_demand * DAYS_PER_YEAR,
        days_until_stockout=days_until_stockout,
        projected_stockout_date=projected_stockout_date,
        reorder_date=reorder_date,
        reorder_point=calculate_reorder_point(daily_demand, threshold, lead_time_days),
        suggested_order_quantity=calculate_suggested_order_quantity(
            on_hand, daily_demand, threshold, lead_time_days
        ),
        risk_tier=risk_tier
    )

def compute_assignment_risk(on_hand, assignment, sku: Optional[str] = None, as_of: Optional[datetime] = None) -> RiskRecord:
    """Compute risk for a variant using one supplier assignment's parameters."""
    return compute_risk(
        on_hand,
        assignment.daily_demand,
        assignment.reorder_threshold,
        assignment.lead_time_days,
        sku=sku,
        as_of=as_of
    )
