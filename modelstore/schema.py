"""
Declarative field schema inferred from a model definition.

A model definition declares its fields by example: every key maps to a default
value, and the Python type of that value selects the field kind.

    {
        "id": True,                     # IdField, marks the model external
        "title": "untitled",            # PrimitiveField(string)
        "count": 0,                     # PrimitiveField(number)
        "done": False,                  # PrimitiveField(boolean)
        "label": lambda m: m.title,     # ComputedField
        "tags": ["a"],                  # PrimitiveListField(string)
        "owner": {"id": True},          # NestedField(external)
        "meta": {"x": 1},               # NestedField(internal)
        "items": [{"value": ""}],       # NestedListField(internal)
    }

The shape is inspected once per definition by ``infer_schema``; the compiler
only works with the resulting FieldSchema models.
"""
import logging
from typing import Any, Callable, Literal, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from modelstore.coercion import get_coercer, kind_of
from modelstore.errors import DefinitionError

logger = logging.getLogger("FieldSchema")


class _Connect:
    """Sentinel key under which a definition carries its adapter hooks."""

    def __repr__(self) -> str:
        return "modelstore.connect"


connect = _Connect()

HOOK_NAMES = ("get", "set", "list")

##############################
# 1) Field kinds
##############################

class FieldSchema(BaseModel):
    """A single compiled field of a model definition."""
    name: str

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class IdField(FieldSchema):
    kind: Literal["id"] = "id"


class PrimitiveField(FieldSchema):
    kind: Literal["primitive"] = "primitive"
    type_name: str
    default: Any


class PrimitiveListField(FieldSchema):
    kind: Literal["primitive_list"] = "primitive_list"
    type_name: str
    default: Tuple[Any, ...] = ()


class ComputedField(FieldSchema):
    kind: Literal["computed"] = "computed"
    getter: Callable[[Any], Any]


class NestedField(FieldSchema):
    kind: Literal["nested"] = "nested"
    # Any keeps the definition object itself; its identity is the config key
    definition: Any = Field(repr=False)
    external: bool


class NestedListField(FieldSchema):
    kind: Literal["nested_list"] = "nested_list"
    definition: Any = Field(repr=False)
    external: bool
    default: Tuple[Any, ...] = Field(default=(), repr=False)


AnyField = Union[
    IdField, PrimitiveField, PrimitiveListField, ComputedField, NestedField, NestedListField
]

##############################
# 2) Inference
##############################

def is_external(definition: Mapping[Any, Any]) -> bool:
    """A definition is external when it declares ``id`` or carries adapter hooks."""
    return "id" in definition or connect in definition


def infer_field(
    name: str,
    default: Any,
    external: Callable[[Mapping[Any, Any]], bool] = is_external,
) -> AnyField:
    """Infer the kind of one field from its default value."""
    if name == "id":
        if default is not True:
            raise DefinitionError(
                f"'id' key must be set to True or not defined: {type(default).__name__}"
            )
        return IdField(name=name)

    if callable(default):
        return ComputedField(name=name, getter=default)

    if isinstance(default, (list, tuple)):
        if not default:
            raise DefinitionError(f"List property '{name}' must contain an example item")
        item = default[0]
        if isinstance(item, dict):
            return NestedListField(
                name=name, definition=item, external=external(item), default=tuple(default)
            )
        type_name = kind_of(item)
        coerce = get_coercer(type_name)
        return PrimitiveListField(
            name=name, type_name=type_name, default=tuple(coerce(value) for value in default)
        )

    if isinstance(default, dict):
        return NestedField(name=name, definition=default, external=external(default))

    return PrimitiveField(name=name, type_name=kind_of(default), default=default)


def infer_schema(
    fields: Mapping[Any, Any],
    external: Callable[[Mapping[Any, Any]], bool] = is_external,
) -> Tuple[AnyField, ...]:
    """Infer the schema of a definition, keeping declaration order."""
    schema = []
    for name, default in fields.items():
        if not isinstance(name, str):
            raise DefinitionError(f"Property names must be strings: {name!r}")
        schema.append(infer_field(name, default, external))
    logger.debug(f"Inferred {len(schema)} fields: {[field.name for field in schema]}")
    return tuple(schema)
