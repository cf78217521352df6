from .dates import to_internal, to_external, to_comparable, MalformedDateError, InvalidCalendarDateError
from .hashing import sha256_hex

__all__ = [
    'to_internal', 'to_external', 'to_comparable',
    'MalformedDateError', 'InvalidCalendarDateError', 'sha256_hex'
]
