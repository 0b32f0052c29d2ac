"""
Schema compiler: turns model definitions into memoized configs.

A Config holds the adapter hooks of a definition (``get``, ``set``, ``list``)
and its ``create(data, previous)`` factory. ``create`` applies every field of
the inferred schema to the supplied data:

1. Values present in ``data`` are coerced / normalized
2. Missing values are taken from ``previous`` (by reference, so unchanged
   branches stay identical between versions)
3. Otherwise the definition default is used

Nested external models are synced into the cache and stored as References;
nested internal models are created recursively.

A ListConfig wraps the Config of the single item of a ``[definition]`` list.
"""
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union

from modelstore.coercion import get_coercer
from modelstore.errors import ArgumentError, DefinitionError
from modelstore.identifiers import generate_id
from modelstore.instance import Instance, ModelList, Reference
from modelstore.schema import (
    HOOK_NAMES,
    AnyField,
    ComputedField,
    IdField,
    NestedField,
    NestedListField,
    PrimitiveField,
    PrimitiveListField,
    connect,
    infer_schema,
)

##############################
# 1) Helpers
##############################

def _lookup(data: Any, key: str) -> Tuple[bool, Any]:
    """(present, value) of a key in raw data or in an instance used as data."""
    if isinstance(data, Instance):
        if key in data.keys():
            return True, data.raw(key)
        return False, None
    if key in data:
        return True, data[key]
    return False, None


def _previous(previous: Optional[Instance], key: str) -> Tuple[bool, Any]:
    if previous is not None and key in previous.keys():
        return True, previous.raw(key)
    return False, None


def read_hooks(value: Any) -> Dict[str, Callable[..., Any]]:
    """Validate the adapter hooks attached to a definition."""
    if isinstance(value, Mapping):
        unknown = set(value) - set(HOOK_NAMES)
        if unknown:
            raise DefinitionError(f"Unknown adapter hooks: {sorted(map(str, unknown))}")
        hooks = dict(value)
    else:
        hooks = {name: getattr(value, name) for name in HOOK_NAMES if hasattr(value, name)}

    if not hooks:
        raise DefinitionError(f"Adapter must provide at least one of {HOOK_NAMES}")
    for name, hook in hooks.items():
        if not callable(hook):
            raise DefinitionError(f"Adapter hook '{name}' must be callable: {type(hook).__name__}")
    return hooks


def normalize_entry(config: "Config", item: Any) -> Any:
    """
    Normalize one nested value for ``config``.

    External models yield a Reference (synced into the cache when built from
    raw data); internal models yield an Instance.
    """
    registry = config.store.registry
    if item is None:
        raise ArgumentError("Nested model value must not be None")

    if isinstance(item, Reference):
        if item.config is not config:
            raise ArgumentError("Reference must point to the same model definition")
        return item

    owner = registry.definition_of(item)
    if owner is not None:
        if owner is not config.definition:
            raise ArgumentError("Model instance must match model definition")
        return Reference(config=config, id=item.raw("id")) if config.external else item

    if isinstance(item, (Mapping, Instance)):
        model = config.create(item)
        if config.external:
            model_id = model.raw("id")
            config.store.sync(config, model_id, model)
            return Reference(config=config, id=model_id)
        return model

    if not config.external:
        raise ArgumentError(f"Model instance must be a mapping: {type(item).__name__}")
    return Reference(config=config, id=str(item))

##############################
# 2) Configs
##############################

class Config:
    """Compiled model definition."""

    def __init__(self, store: Any, definition: Dict[Any, Any], external: bool) -> None:
        self.store = store
        self.definition = definition
        self.external = external
        self.get: Optional[Callable[..., Any]] = None
        self.set: Optional[Callable[..., Any]] = None
        self.list: Optional[Callable[..., Any]] = None
        self.fields: Tuple[AnyField, ...] = ()
        self.nested: Dict[str, Union["Config", "ListConfig"]] = {}
        self.computed: Dict[str, Callable[[Any], Any]] = {}

    def __repr__(self) -> str:
        names = ", ".join(field.name for field in self.fields)
        return f"Config(external={self.external}, fields=[{names}])"

    def create(self, data: Any, previous: Optional[Instance] = None) -> Optional[Instance]:
        """Build a new frozen instance from ``data``, reusing ``previous`` where data is missing."""
        if data is None:
            return None
        if previous is not None and data is previous:
            return previous
        if not isinstance(data, (Mapping, Instance)):
            raise ArgumentError(f"Model instance must be a mapping or None: {type(data).__name__}")

        values: Dict[str, Any] = {}
        for field in self.fields:
            if isinstance(field, ComputedField):
                continue
            apply = getattr(self, f"_apply_{field.kind}")
            apply(field, values, data, previous)

        instance = Instance(self.store, values, self.computed)
        self.store.registry.register(instance, self.definition, previous)
        return instance

    # Field transforms
    def _apply_id(self, field: IdField, values: Dict[str, Any], data: Any, previous: Optional[Instance]) -> None:
        has_previous, last_id = _previous(previous, "id")
        if has_previous:
            values["id"] = last_id
            return
        present, value = _lookup(data, "id")
        supplied = str(value) if present and value is not None else ""
        values["id"] = supplied or generate_id()

    def _apply_primitive(self, field: PrimitiveField, values: Dict[str, Any], data: Any, previous: Optional[Instance]) -> None:
        present, value = _lookup(data, field.name)
        if present:
            values[field.name] = get_coercer(field.type_name)(value)
            return
        has_previous, last = _previous(previous, field.name)
        values[field.name] = last if has_previous else field.default

    def _apply_primitive_list(self, field: PrimitiveListField, values: Dict[str, Any], data: Any, previous: Optional[Instance]) -> None:
        present, value = _lookup(data, field.name)
        if present:
            if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
                raise ArgumentError(f"Property '{field.name}' must be a list: {type(value).__name__}")
            coerce = get_coercer(field.type_name)
            values[field.name] = tuple(coerce(item) for item in value)
            return
        has_previous, last = _previous(previous, field.name)
        values[field.name] = last if has_previous else field.default

    def _apply_nested(self, field: NestedField, values: Dict[str, Any], data: Any, previous: Optional[Instance]) -> None:
        nested = self.nested[field.name]
        present, value = _lookup(data, field.name)
        has_previous, last = _previous(previous, field.name)

        if field.external:
            if present:
                values[field.name] = None if value is None else normalize_entry(nested, value)
            else:
                values[field.name] = last if has_previous else None
            return

        if present:
            values[field.name] = nested.create(value, last)
        elif has_previous:
            values[field.name] = last
        else:
            values[field.name] = nested.create({})

    def _apply_nested_list(self, field: NestedListField, values: Dict[str, Any], data: Any, previous: Optional[Instance]) -> None:
        nested = self.nested[field.name]
        present, value = _lookup(data, field.name)
        if present:
            if not isinstance(value, (list, tuple, ModelList)):
                raise ArgumentError(f"List of models must be a list: {type(value).__name__}")
            values[field.name] = nested.create(value)
            return
        has_previous, last = _previous(previous, field.name)
        if has_previous:
            values[field.name] = last
        elif field.external:
            # external lists are never populated from defaults
            values[field.name] = ModelList(self.store)
        else:
            values[field.name] = nested.create(field.default)


class ListConfig:
    """Config of a ``[definition]`` list: items are normalized by the item config."""

    def __init__(self, item: Config) -> None:
        self.store = item.store
        self.item = item
        self.definition = item.definition
        self.external = item.external
        self.get = item.list
        self.set: Optional[Callable[..., Any]] = None
        self.list: Optional[Callable[..., Any]] = None

    def __repr__(self) -> str:
        return f"ListConfig({self.item!r})"

    def create(self, items: Any, previous: Optional[ModelList] = None) -> Optional[ModelList]:
        if items is None:
            return None
        if previous is not None and items is previous:
            return previous
        if isinstance(items, ModelList):
            items = items.raw()
        elif isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
            raise ArgumentError(f"List of models must be a list: {type(items).__name__}")
        return ModelList(self.store, tuple(normalize_entry(self.item, item) for item in items))

##############################
# 3) Compiler
##############################

class SchemaCompiler:
    """Compiles definitions for one store, memoizing through its registry."""
    _logger = logging.getLogger("SchemaCompiler")

    def __init__(self, store: Any) -> None:
        self.store = store

    @property
    def registry(self) -> Any:
        return self.store.registry

    def bootstrap(self, definition: Any) -> Union[Config, ListConfig]:
        """Config for a definition; a one-item list selects list semantics."""
        if isinstance(definition, list):
            if len(definition) != 1:
                raise DefinitionError(
                    f"List definition must contain exactly one model definition: {len(definition)} items"
                )
            return self.compile_list(definition[0])
        return self.compile(definition)

    def is_external(self, definition: Any) -> bool:
        config = self.registry.get_config(definition)
        if config is not None:
            return config.external
        return "id" in definition or connect in definition

    def compile(self, definition: Any, _embedded_in: FrozenSet[int] = frozenset()) -> Config:
        """
        Compile a definition once per store.

        ``_embedded_in`` holds the ids of the definitions that embed this one
        by value (internal nesting only). Meeting one of them again would
        make ``create`` recurse forever, so it is a definition error; cycles
        through an external definition are references and are allowed.
        """
        if id(definition) in _embedded_in:
            self._logger.error("Internal model definition nests itself")
            raise DefinitionError(
                "Model definition without 'id' cannot nest itself, add 'id' to make it external"
            )
        if not isinstance(definition, dict):
            raise DefinitionError(f"Model definition must be a dict: {type(definition).__name__}")

        config = self.registry.get_config(definition)
        if config is not None:
            return config

        hooks = read_hooks(definition[connect]) if connect in definition else None

        config = Config(self.store, definition, external="id" in definition or hooks is not None)
        for name, hook in (hooks or self._default_hooks(config)).items():
            setattr(config, name, hook)

        fields: Dict[Any, Any] = {key: value for key, value in definition.items() if key is not connect}
        if config.external and "id" not in fields:
            fields = {"id": True, **fields}
        snapshot = MappingProxyType(fields)

        # registered first so self-referencing definitions resolve to this config
        self.registry.set_config(definition, config)
        try:
            config.fields = infer_schema(snapshot, self.is_external)
            embedded_in = frozenset() if config.external else _embedded_in | {id(definition)}
            for field in config.fields:
                if isinstance(field, ComputedField):
                    config.computed[field.name] = field.getter
                elif isinstance(field, NestedField):
                    config.nested[field.name] = self.compile(field.definition, embedded_in)
                elif isinstance(field, NestedListField):
                    config.nested[field.name] = self.compile_list(field.definition, embedded_in)
        except Exception:
            self.registry.drop_config(definition)
            self._logger.error(f"Failed to compile definition with keys {list(snapshot)}")
            raise

        if hooks is not None:
            del definition[connect]
        self._logger.info(
            f"Compiled {'external' if config.external else 'internal'} definition "
            f"({len(config.fields)} fields, {'connected' if hooks else 'disconnected'})"
        )
        return config

    def compile_list(self, definition: Any, _embedded_in: FrozenSet[int] = frozenset()) -> ListConfig:
        config = self.registry.get_list_config(definition)
        if config is None:
            config = ListConfig(self.compile(definition, _embedded_in))
            self.registry.set_list_config(definition, config)
        return config

    def _default_hooks(self, config: Config) -> Dict[str, Callable[..., Any]]:
        """Hooks of a disconnected definition, backed by the store cache only."""
        store = self.store

        def get_model(parameters: Any = None) -> Optional[Instance]:
            return None if config.external else config.create({})

        def set_model(model_id: Any, model: Any) -> None:
            return None

        def list_models(parameters: Any = None) -> Any:
            if parameters is not None:
                raise ArgumentError("Disconnected model does not support parameters")
            return [
                entry.key if config.external else entry.value
                for entry in store.cache.get_entries(config)
                if isinstance(entry.value, Instance)
            ]

        return {"get": get_model, "set": set_model, "list": list_models}
