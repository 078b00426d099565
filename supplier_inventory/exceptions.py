class SupplierInventoryError(Exception):
    """Base exception for Supplier Inventory errors.

    Args:
        message: Error message (defaults to the class's ``default_message``)
        code: Optional error code, e.g. an HTTP status of a remote store
        details: Optional dictionary with context for logs and API output
    """

    default_message = "An error occurred in the Supplier Inventory system"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(SupplierInventoryError):
    default_message = "Configuration error"


class DatabaseError(SupplierInventoryError):
    default_message = "Database error"


class ValidationError(SupplierInventoryError):
    """Raised when a record is missing required fields or holds invalid values."""
    default_message = "Validation error"


class NotFoundError(SupplierInventoryError):
    default_message = "Resource not found"


class SupplierError(SupplierInventoryError):
    """Raised for supplier catalog requests that cannot be processed at all."""
    default_message = "Supplier error"


class AssignmentError(SupplierInventoryError):
    """Raised for invalid supplier assignment list operations, such as a bad index."""
    default_message = "Supplier assignment error"


class MalformedInputError(SupplierInventoryError):
    """Raised when an import file cannot be parsed at all.

    Fatal for the whole import run: nothing is grouped or committed.
    """
    default_message = "Malformed import input"


class LocalValidationSkip(SupplierInventoryError):
    """Raised when an import group fails a local precondition.

    Caught per group by the import reconciler and reported as skipped.
    """
    default_message = "Import group skipped"


class ExternalWriteError(SupplierInventoryError):
    """Raised when the metafield store rejects or fails a write."""
    default_message = "External write failed"


class RateLimitError(ExternalWriteError):
    """Raised when the metafield store throttles a write (HTTP 429).

    ``retry_after`` carries the store's suggested wait in seconds, if any.
    """
    default_message = "Rate limit exceeded"

    def __init__(self, message=None, code=429, details=None, retry_after=None):
        self.retry_after = retry_after
        super().__init__(message, code, details)


class WriteTimeoutError(ExternalWriteError):
    default_message = "External write timed out"


class ReportingError(SupplierInventoryError):
    default_message = "Reporting error"
