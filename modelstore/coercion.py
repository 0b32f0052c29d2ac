"""Primitive kind detection and coercion for field default values."""
from typing import Any, Callable, Dict

from modelstore.errors import ArgumentError, DefinitionError


def to_number(value: Any) -> Any:
    """Coerce a value to ``int`` when it is integral, ``float`` otherwise."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise ArgumentError(f"Value is not a number: {value!r}") from None


COERCERS: Dict[str, Callable[[Any], Any]] = {
    "string": str,
    "number": to_number,
    "boolean": bool,
}


def kind_of(value: Any) -> str:
    """Return the primitive kind name of a default value."""
    # bool first, it is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    raise DefinitionError(
        f"Property type must be string, number or boolean: {type(value).__name__}"
    )


def get_coercer(kind: str) -> Callable[[Any], Any]:
    """Get the coercion function for a primitive kind name."""
    try:
        return COERCERS[kind]
    except KeyError:
        raise DefinitionError(f"Unsupported primitive kind: {kind}") from None
