"""
Shared fixtures for database-backed tests.
"""
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from supplier_inventory.models import Base, Supplier, Variant


class DatabaseTestCase(unittest.TestCase):
    """Test case with a fresh in-memory SQLite database per test."""

    def setUp(self):
        """Set up test fixtures."""
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine)()

    def tearDown(self):
        """Tear down test fixtures."""
        self.session.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def add_supplier(self, supplier_id, supplier_name=None, **fields):
        supplier = Supplier(supplier_id=supplier_id, supplier_name=supplier_name or f"Supplier {supplier_id}", **fields)
        self.session.add(supplier)
        self.session.commit()
        return supplier

    def add_variant(self, sku, on_hand_quantity=0, variant_id=None, product_title=None):
        variant = Variant(
            variant_id=variant_id or f"gid://shopify/ProductVariant/{sku}",
            sku=sku,
            product_title=product_title or f"Product {sku}",
            variant_title='Default',
            on_hand_quantity=on_hand_quantity
        )
        self.session.add(variant)
        self.session.commit()
        return variant
