from __future__ import annotations
from typing import Optional, Union

from graphml_loader.app.core.errors import CastError
from graphml_loader.app.models.graph import PropertyType, TypedValue

INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1
LONG_MIN, LONG_MAX = -(2 ** 63), 2 ** 63 - 1


class TypeCaster:
    """
    Converts the text of a <data> element into the value of its declared type.

    Numeric parsing always uses '.' as the decimal separator, whatever the host
    locale. Malformed numerics raise CastError; booleans are loose by default
    (anything but "true" is False) unless strict_booleans is set.
    """

    def __init__(self, strict_booleans: bool = False):
        self.strict_booleans = strict_booleans

    def cast(self, declared_type: PropertyType, raw: str, key: Optional[str] = None) -> TypedValue:
        if declared_type is PropertyType.STRING:
            return raw
        if declared_type is PropertyType.INT:
            return self._integer(raw, INT_MIN, INT_MAX, declared_type, key)
        if declared_type is PropertyType.LONG:
            return self._integer(raw, LONG_MIN, LONG_MAX, declared_type, key)
        if declared_type in (PropertyType.FLOAT, PropertyType.DOUBLE):
            return self._decimal(raw, declared_type, key)
        if declared_type is PropertyType.BOOLEAN:
            return self._boolean(raw, key)
        return raw

    def _integer(self, raw: str, lo: int, hi: int, declared_type: PropertyType, key: Optional[str]) -> int:
        text = raw.strip()
        # int() also accepts "1_000"; digit grouping is not valid GraphML
        if "_" in text:
            raise self._failure(raw, declared_type, key)
        try:
            value = int(text, 10)
        except ValueError:
            raise self._failure(raw, declared_type, key) from None
        if not lo <= value <= hi:
            raise CastError(
                "numeric value out of range",
                key=key, declared_type=declared_type.name.lower(), value=raw,
            )
        return value

    def _decimal(self, raw: str, declared_type: PropertyType, key: Optional[str]) -> float:
        text = raw.strip()
        if "_" in text or "," in text:
            raise self._failure(raw, declared_type, key)
        try:
            return float(text)
        except ValueError:
            raise self._failure(raw, declared_type, key) from None

    def _boolean(self, raw: str, key: Optional[str]) -> bool:
        text = raw.strip().lower()
        if text == "true":
            return True
        if self.strict_booleans and text != "false":
            raise self._failure(raw, PropertyType.BOOLEAN, key)
        return False

    @staticmethod
    def _failure(raw: str, declared_type: PropertyType, key: Optional[str]) -> CastError:
        return CastError(
            f"cannot cast value to {declared_type.name.lower()}",
            key=key, declared_type=declared_type.name.lower(), value=raw,
        )


def canonical_text(value: TypedValue) -> str:
    """Text stored in the string column for a typed value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def numeric_column(declared_type: PropertyType, value: TypedValue) -> Optional[Union[int, float]]:
    if declared_type.is_numeric and not isinstance(value, bool):
        return value  # type: ignore[return-value]
    return None
