"""
Conversión de fechas entre el formato externo y el formato interno.

El sistema recibe fechas en DD-MM-YYYY pero la base de datos guarda MM-DD-YYYY.
"""
import re
from datetime import date

_DATE_PATTERN = re.compile(r"^([0-9]{2})-([0-9]{2})-([0-9]{4})$")


class MalformedDateError(ValueError):
    pass


class InvalidCalendarDateError(ValueError):
    pass


def _split(value: str, expected: str) -> tuple[int, int, int]:
    if not isinstance(value, str):
        raise MalformedDateError(f"Invalid date format: {value!r}. Expected {expected}")
    match = _DATE_PATTERN.match(value)
    if not match:
        raise MalformedDateError(f"Invalid date format: {value!r}. Expected {expected}")
    first, second, year = (int(group) for group in match.groups())
    return first, second, year


def _check_calendar(year: int, month: int, day: int, original: str) -> date:
    try:
        return date(year, month, day)
    except ValueError:
        raise InvalidCalendarDateError(f"Invalid date: {original}")


def to_internal(external: str) -> str:
    """DD-MM-YYYY -> MM-DD-YYYY"""
    day, month, year = _split(external, "DD-MM-YYYY")
    _check_calendar(year, month, day, external)
    return f"{month:02d}-{day:02d}-{year:04d}"


def to_external(internal: str) -> str:
    """MM-DD-YYYY -> DD-MM-YYYY"""
    month, day, year = _split(internal, "MM-DD-YYYY")
    _check_calendar(year, month, day, internal)
    return f"{day:02d}-{month:02d}-{year:04d}"


def to_comparable(external: str) -> int:
    """
    Valor numérico YYYYMMDD de una fecha DD-MM-YYYY, útil para comparar
    el inicio y el fin de un periodo.
    """
    day, month, year = _split(external, "DD-MM-YYYY")
    parsed = _check_calendar(year, month, day, external)
    return parsed.year * 10000 + parsed.month * 100 + parsed.day
