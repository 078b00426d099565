# supplier_inventory/services/supplier_service.py
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from supplier_inventory.models import Supplier
from supplier_inventory.exceptions import NotFoundError, SupplierError, ValidationError
from supplier_inventory.logging_setup import get_logger
from supplier_inventory.utils.parsing import clean_text

logger = get_logger('supplier_service')

class SupplierService:
    """Service for the supplier catalog."""

    def __init__(self, session: Session):
        """Initialize the supplier service.

        Args:
            session: Database session
        """
        self.session = session

    def get_supplier(self, supplier_id: str) -> Optional[Supplier]:
        """Get a supplier by its external supplier ID.

        Args:
            supplier_id: Supplier ID

        Returns:
            Supplier object or None if not found
        """
        return self.session.query(Supplier).filter(Supplier.supplier_id == supplier_id).first()

    def get_all_suppliers(self) -> List[Supplier]:
        """Get all suppliers ordered by name."""
        return self.session.query(Supplier).order_by(Supplier.supplier_name, Supplier.supplier_id).all()

    def get_supplier_ids(self) -> Set[str]:
        """Get the set of known supplier IDs."""
        return {row[0] for row in self.session.query(Supplier.supplier_id).all()}

    def get_supplier_names(self) -> Dict[str, str]:
        """Get a mapping of supplier ID to supplier name."""
        return {
            supplier_id: name
            for supplier_id, name in self.session.query(Supplier.supplier_id, Supplier.supplier_name).all()
        }

    def save_supplier(self, data: Dict) -> Supplier:
        """Create a supplier or update the one with the same supplier ID.

        Empty values are ignored, so an update never blanks out a field.

        Args:
            data: Supplier fields; ``supplier_id`` and ``supplier_name`` are
                required for new suppliers

        Returns:
            The saved supplier

        Raises:
            ValidationError if required fields are missing
        """
        supplier_id = clean_text(data.get('supplier_id'))
        if not supplier_id:
            raise ValidationError("Missing required field: supplier_id")

        fields = {}
        for field in Supplier.FIELDS:
            value = clean_text(data.get(field))
            if value:
                fields[field] = value

        supplier = self.get_supplier(supplier_id)
        if supplier is None:
            if not fields.get('supplier_name'):
                raise ValidationError("Missing required fields: supplier_id and supplier_name")
            supplier = Supplier(supplier_id=supplier_id)
            self.session.add(supplier)
            logger.info(f"Created supplier {supplier_id}")
        else:
            logger.info(f"Updated supplier {supplier_id}")

        for field, value in fields.items():
            setattr(supplier, field, value)

        self.session.flush()
        return supplier

    def delete_supplier(self, supplier_id: str) -> None:
        """Delete a supplier from the catalog.

        Assignments referencing it are left as they are; they no longer
        resolve against the catalog.

        Raises:
            NotFoundError if the supplier does not exist
        """
        supplier = self.get_supplier(supplier_id)
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")

        self.session.delete(supplier)
        self.session.flush()
        logger.info(f"Deleted supplier {supplier_id}")

    def bulk_import_suppliers(self, records: List[Dict]) -> Dict:
        """Import supplier catalog records.

        Each record is saved independently; a bad record is reported and
        the rest continue.

        Args:
            records: Supplier dictionaries

        Returns:
            Dictionary with ``success``, ``failed`` and ``total``
        """
        if not isinstance(records, list):
            raise SupplierError("Invalid supplier import. Expected a list of suppliers")

        logger.info(f"Starting bulk import of {len(records)} suppliers...")

        results = {
            'success': [],
            'failed': [],
            'total': len(records)
        }

        for record in records:
            name = clean_text(record.get('supplier_name')) if isinstance(record, dict) else ''
            try:
                if not isinstance(record, dict):
                    raise ValidationError("Supplier record must be an object")

                existed = self.get_supplier(clean_text(record.get('supplier_id'))) is not None
                supplier = self.save_supplier(record)

                results['success'].append({
                    'supplier': supplier.supplier_name,
                    'id': supplier.supplier_id,
                    'action': 'updated' if existed else 'created'
                })
            except ValidationError as e:
                results['failed'].append({
                    'supplier': name or 'Unknown',
                    'error': e.message
                })

        logger.info(f"Supplier import complete. Success: {len(results['success'])}, Failed: {len(results['failed'])}")
        return results
