# supplier_inventory/models.py
from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class RiskTier(enum.Enum):
    """Stockout risk tiers, most urgent first.

    Values:
        OUT_OF_STOCK: Nothing left to sell while demand is positive
        CRITICAL: Stockout within 7 days (or already at/under threshold)
        WARNING: Stockout within 14 days
        ATTENTION: Stockout within 30 days
        LOW: More than 30 days of cover, or no demand at all
    """
    OUT_OF_STOCK = 'out_of_stock'
    CRITICAL = 'critical'
    WARNING = 'warning'
    ATTENTION = 'attention'
    LOW = 'low'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @property
    def rank(self) -> int:
        """Urgency rank, 0 being the most urgent."""
        return list(RiskTier).index(self)

    @property
    def is_at_risk(self) -> bool:
        """Whether the tier counts towards the at-risk total (30 days or less)."""
        return self is not RiskTier.LOW

    @classmethod
    def from_string(cls, value: str) -> 'RiskTier':
        """Create a RiskTier from a string value.

        Args:
            value: Tier value, case-insensitive ('critical', 'LOW', ...)

        Returns:
            RiskTier enum value

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            valid = ', '.join(tier.value for tier in cls)
            raise ValueError(f"Invalid risk tier: {value}. Valid values are: {valid}")

class RowOutcome(enum.Enum):
    SUCCESS = 'success'
    SKIPPED = 'skipped'
    FAILED = 'failed'

class ImportStage(enum.Enum):
    """Stages of a bulk assignment import run, in order."""
    PENDING = 'pending'
    PARSED = 'parsed'
    GROUPED = 'grouped'
    VALIDATED = 'validated'
    COMMITTED = 'committed'

class UnknownSupplierPolicy(enum.Enum):
    """How supplier statistics treat assignments whose supplier is not in the catalog."""
    IGNORE = 'ignore'
    BUCKET = 'bucket'

    @classmethod
    def from_string(cls, value: str) -> 'UnknownSupplierPolicy':
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid unknown supplier policy: {value}. Valid values are: ignore, bucket")

class Supplier(Base):
    __tablename__ = 'suppliers'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(String(100), nullable=False, unique=True)
    supplier_name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    contact_name_2 = Column(String(255))
    address = Column(String(255))
    address_2 = Column(String(255))
    city = Column(String(100))
    state = Column(String(100))
    zip = Column(String(20))
    country = Column(String(100))
    phone_1 = Column(String(50))
    phone_2 = Column(String(50))
    email_1 = Column(String(255))
    email_2 = Column(String(255))
    website = Column(String(255))
    notes = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Optional catalog fields accepted from imports and edits
    FIELDS = (
        'supplier_name', 'contact_name', 'contact_name_2', 'address', 'address_2',
        'city', 'state', 'zip', 'country', 'phone_1', 'phone_2', 'email_1',
        'email_2', 'website', 'notes'
    )

    def to_dict(self):
        record = {'supplier_id': self.supplier_id}
        for field in self.FIELDS:
            record[field] = getattr(self, field)
        return record

    def __repr__(self):
        return f"<Supplier {self.supplier_id}: {self.supplier_name}>"

class Variant(Base):
    """Read-only snapshot of a platform product variant and its on-hand quantity."""
    __tablename__ = 'variants'

    id = Column(Integer, primary_key=True)
    variant_id = Column(String(255), nullable=False, unique=True)
    sku = Column(String(100), index=True)
    product_title = Column(String(255))
    variant_title = Column(String(255))
    on_hand_quantity = Column(Integer, default=0, nullable=False)
    synced_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Variant {self.sku} ({self.variant_id}) on_hand={self.on_hand_quantity}>"

class Metafield(Base):
    """Opaque JSON value keyed by owner entity, namespace and key."""
    __tablename__ = 'metafields'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(255), nullable=False)
    namespace = Column(String(100), nullable=False)
    key = Column(String(100), nullable=False)
    type = Column(String(50), default='json', nullable=False)
    value = Column(Text)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('owner_id', 'namespace', 'key', name='uq_metafield_owner_namespace_key'),
        Index('ix_metafield_namespace_key', 'namespace', 'key'),
    )

    def __repr__(self):
        return f"<Metafield {self.owner_id} {self.namespace}.{self.key}>"
