from .parsing import (
    parse_non_negative_number, parse_non_negative_int, parse_int,
    parse_bool, parse_date, clean_text
)
from .retry import RetryPolicy

__all__ = [
    'parse_non_negative_number',
    'parse_non_negative_int',
    'parse_int',
    'parse_bool',
    'parse_date',
    'clean_text',
    'RetryPolicy'
]
