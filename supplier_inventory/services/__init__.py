from .supplier_service import SupplierService
from .variant_service import VariantService
from .metafield_store import MetafieldStore, SqlMetafieldStore, AssignmentRepository
from .import_service import ImportReconciler, ImportBatchResult
from .reporting_service import ReportingService

__all__ = [
    'SupplierService',
    'VariantService',
    'MetafieldStore',
    'SqlMetafieldStore',
    'AssignmentRepository',
    'ImportReconciler',
    'ImportBatchResult',
    'ReportingService'
]
