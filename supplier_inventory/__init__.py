from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    SupplierInventoryError, MalformedInputError, ExternalWriteError,
    RateLimitError, AssignmentError, SupplierError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'SupplierInventoryError',
    'MalformedInputError',
    'ExternalWriteError',
    'RateLimitError',
    'AssignmentError',
    'SupplierError'
]
