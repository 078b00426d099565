# supplier_inventory/services/metafield_store.py
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supplier_inventory.config import config
from supplier_inventory.core import assignments as assignment_model
from supplier_inventory.core.assignments import (
    SupplierAssignment, dump_assignments, load_assignments, normalize
)
from supplier_inventory.exceptions import ExternalWriteError
from supplier_inventory.logging_setup import get_logger
from supplier_inventory.models import Metafield

logger = get_logger('metafield_store')

class MetafieldStore(ABC):
    """Key-value store of opaque JSON text keyed by owner, namespace and key.

    Writes are last-write-wins; implementations raise ExternalWriteError
    (or a subclass such as RateLimitError) when a write is rejected.
    """

    @abstractmethod
    def get(self, owner_id: str, namespace: str, key: str) -> Optional[str]:
        """Return the stored value, or None when nothing is stored."""

    @abstractmethod
    def set(self, owner_id: str, namespace: str, key: str, value: str, value_type: str = 'json') -> None:
        """Store a value, replacing any previous one."""

    def get_many(self, owner_ids: Iterable[str], namespace: str, key: str) -> Dict[str, str]:
        """Return stored values for several owners, omitting owners without one."""
        values = {}
        for owner_id in owner_ids:
            value = self.get(owner_id, namespace, key)
            if value is not None:
                values[owner_id] = value
        return values


class SqlMetafieldStore(MetafieldStore):
    """Metafield store backed by the local ``metafields`` table.

    Each write is committed on its own, matching a remote store where
    every accepted write is durable independently of the others.
    """

    def __init__(self, session: Session, commit_each_write: bool = True):
        """Initialize the store.

        Args:
            session: Database session
            commit_each_write: Commit after every successful write
        """
        self.session = session
        self.commit_each_write = commit_each_write

    def _find(self, owner_id: str, namespace: str, key: str) -> Optional[Metafield]:
        return (
            self.session.query(Metafield)
            .filter(
                Metafield.owner_id == owner_id,
                Metafield.namespace == namespace,
                Metafield.key == key
            )
            .first()
        )

    def get(self, owner_id: str, namespace: str, key: str) -> Optional[str]:
        metafield = self._find(owner_id, namespace, key)
        return metafield.value if metafield else None

    def get_many(self, owner_ids: Iterable[str], namespace: str, key: str) -> Dict[str, str]:
        owner_ids = list(owner_ids)
        if not owner_ids:
            return {}

        rows = (
            self.session.query(Metafield.owner_id, Metafield.value)
            .filter(
                Metafield.owner_id.in_(owner_ids),
                Metafield.namespace == namespace,
                Metafield.key == key
            )
            .all()
        )
        return {owner_id: value for owner_id, value in rows if value is not None}

    def set(self, owner_id: str, namespace: str, key: str, value: str, value_type: str = 'json') -> None:
        try:
            metafield = self._find(owner_id, namespace, key)
            if metafield is None:
                metafield = Metafield(owner_id=owner_id, namespace=namespace, key=key)
                self.session.add(metafield)

            metafield.type = value_type
            metafield.value = value

            if self.commit_each_write:
                self.session.commit()
            else:
                self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error writing metafield {namespace}.{key} for {owner_id}: {str(e)}")
            raise ExternalWriteError(
                f"Failed to write {namespace}.{key} for {owner_id}",
                details={'owner_id': owner_id, 'error': str(e)}
            )


class AssignmentRepository:
    """Reads and writes a variant's supplier assignment list through a metafield store.

    All reads go through ``load_assignments`` so that legacy single-object
    blobs are upconverted before any list operation.
    """

    def __init__(self, store: MetafieldStore, namespace: Optional[str] = None, key: Optional[str] = None):
        """Initialize the repository.

        Args:
            store: Metafield store
            namespace: Metafield namespace (defaults to configuration)
            key: Metafield key (defaults to configuration)
        """
        import_config = config.import_config
        self.store = store
        self.namespace = namespace or import_config['namespace']
        self.key = key or import_config['key']

    def read(self, variant_id: str) -> List[SupplierAssignment]:
        """Get the normalized assignment list of a variant (empty if none)."""
        return load_assignments(self.store.get(variant_id, self.namespace, self.key))

    def read_many(self, variant_ids: Iterable[str]) -> Dict[str, List[SupplierAssignment]]:
        """Get assignment lists for several variants keyed by variant ID."""
        raw_values = self.store.get_many(variant_ids, self.namespace, self.key)
        return {variant_id: load_assignments(raw) for variant_id, raw in raw_values.items()}

    def assignments_by_variant(self, variants: Iterable) -> Dict[str, List[SupplierAssignment]]:
        """Get non-empty assignment lists of variants with a SKU, keyed by variant ID.

        Each variant keeps its own list even when several variants share a SKU.
        """
        variant_ids = [variant.variant_id for variant in variants if variant.sku]
        return {
            variant_id: assignments
            for variant_id, assignments in self.read_many(variant_ids).items()
            if assignments
        }

    def write(self, variant_id: str, assignments: List[SupplierAssignment]) -> List[SupplierAssignment]:
        """Normalize and store a full assignment list, replacing the previous one.

        Returns:
            The list as stored
        """
        assignments = normalize(assignments)
        self.store.set(variant_id, self.namespace, self.key, dump_assignments(assignments))
        return assignments

    def add_or_update(
        self,
        variant_id: str,
        assignment: SupplierAssignment,
        index: Optional[int] = None
    ) -> List[SupplierAssignment]:
        """Add an assignment to a variant, or replace the one at ``index``."""
        assignments = assignment_model.add_or_update(self.read(variant_id), assignment, index)
        logger.info(f"Saving {len(assignments)} supplier assignment(s) for {variant_id}")
        return self.write(variant_id, assignments)

    def remove(self, variant_id: str, index: int) -> List[SupplierAssignment]:
        """Remove the assignment at ``index`` from a variant."""
        assignments = assignment_model.remove(self.read(variant_id), index)
        logger.info(f"Removed supplier assignment {index} for {variant_id}")
        return self.write(variant_id, assignments)
