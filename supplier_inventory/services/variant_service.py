# supplier_inventory/services/variant_service.py
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from supplier_inventory.models import Variant
from supplier_inventory.exceptions import ValidationError
from supplier_inventory.logging_setup import get_logger
from supplier_inventory.utils.parsing import clean_text, parse_int

logger = get_logger('variant_service')

class VariantService:
    """Read access to the variant snapshot (SKU, identity, on-hand quantity)."""

    def __init__(self, session: Session):
        """Initialize the variant service.

        Args:
            session: Database session
        """
        self.session = session

    def get_by_sku(self, sku: str) -> Optional[Variant]:
        """Get a variant by SKU.

        Args:
            sku: Variant SKU

        Returns:
            Variant object or None if not found
        """
        return self.session.query(Variant).filter(Variant.sku == sku).first()

    def get_by_variant_id(self, variant_id: str) -> Optional[Variant]:
        """Get a variant by its platform identity."""
        return self.session.query(Variant).filter(Variant.variant_id == variant_id).first()

    def get_all_variants(self) -> List[Variant]:
        """Get all variants that carry a SKU, ordered by SKU."""
        return (
            self.session.query(Variant)
            .filter(Variant.sku.isnot(None), Variant.sku != '')
            .order_by(Variant.sku)
            .all()
        )

    def build_sku_index(self) -> Dict[str, Variant]:
        """Map SKU to variant for every variant with a SKU.

        When several variants share a SKU the last one read wins.
        """
        return {variant.sku: variant for variant in self.get_all_variants()}

    def sync_snapshot(self, records: List[Dict]) -> Dict:
        """Upsert variant snapshot records pulled from the platform.

        Args:
            records: Dictionaries with ``variant_id``, ``sku``,
                ``product_title``, ``variant_title`` and ``on_hand_quantity``

        Returns:
            Dictionary with created, updated and invalid counts
        """
        results = {
            'created': 0,
            'updated': 0,
            'invalid': 0
        }

        for record in records:
            try:
                variant_id = clean_text(record.get('variant_id'))
                if not variant_id:
                    raise ValidationError("Variant record is missing variant_id")
            except (AttributeError, ValidationError) as e:
                logger.warning(f"Skipping variant record: {e}")
                results['invalid'] += 1
                continue

            variant = self.get_by_variant_id(variant_id)
            if variant is None:
                variant = Variant(variant_id=variant_id)
                self.session.add(variant)
                results['created'] += 1
            else:
                results['updated'] += 1

            variant.sku = clean_text(record.get('sku')) or None
            variant.product_title = clean_text(record.get('product_title'))
            variant.variant_title = clean_text(record.get('variant_title'))
            variant.on_hand_quantity = parse_int(record.get('on_hand_quantity'))

        self.session.flush()
        logger.info(
            f"Variant snapshot synced: {results['created']} created, "
            f"{results['updated']} updated, {results['invalid']} invalid"
        )
        return results
