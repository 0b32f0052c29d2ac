"""
Immutable values produced by the store.

- Instance: a frozen record; fields are read as attributes or items
- ModelList: a frozen sequence of instances
- Reference: an explicit pointer ``{config, id}`` to an external entity

Nested external entities are never embedded. The owning Instance or ModelList
keeps a Reference and resolves it through the store on every read, so an
update of the referenced entity is visible through all of its referrers.
"""
from collections.abc import Sequence
from typing import Any, Callable, Dict, Iterator, KeysView, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from modelstore.errors import FrozenInstanceError


class Reference(BaseModel):
    """Tagged reference to an external entity, resolved through a store."""
    config: Any = Field(exclude=True, repr=False)
    id: str

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def resolve(self) -> Any:
        return self.config.store.resolve(self)


def _dump_value(value: Any, seen: Set[Reference]) -> Any:
    if isinstance(value, Reference):
        if value in seen:
            return {"id": value.id}
        resolved = value.resolve()
        if not isinstance(resolved, Instance):
            # missing, deleted or still pending
            return None if resolved is None else {"id": value.id}
        return resolved.dump(_seen=seen | {value})
    if isinstance(value, (Instance, ModelList)):
        return value.dump(_seen=seen)
    if isinstance(value, tuple):
        return list(value)
    return value


class Instance:
    """
    Frozen model instance.

    Fields are available as attributes (``model.title``) and items
    (``model["title"]``); item access also works for field names shadowed by
    methods such as ``get`` or ``keys``. Computed fields are evaluated on
    first read and memoized per instance in the store cache.
    """
    __slots__ = ("_store", "_fields", "_computed", "__weakref__")

    def __init__(
        self,
        store: Any,
        fields: Dict[str, Any],
        computed: Optional[Dict[str, Callable[[Any], Any]]] = None,
    ) -> None:
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_fields", dict(fields))
        object.__setattr__(self, "_computed", computed or {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no field {name!r}") from None

    def __getitem__(self, key: str) -> Any:
        if key in self._fields:
            value = self._fields[key]
            if isinstance(value, Reference):
                return self._store.resolve(value)
            return value
        if key in self._computed:
            getter = self._computed[key]
            return self._store.cache.get(self, key, lambda target, previous: getter(target))
        raise KeyError(key)

    def __setattr__(self, name: str, value: Any) -> None:
        raise FrozenInstanceError(f"Cannot set {name!r}: instances are frozen, use Store.set()")

    def __delattr__(self, name: str) -> None:
        raise FrozenInstanceError(f"Cannot delete {name!r}: instances are frozen, use Store.set()")

    def __setitem__(self, key: str, value: Any) -> None:
        raise FrozenInstanceError(f"Cannot set {key!r}: instances are frozen, use Store.set()")

    def __contains__(self, key: object) -> bool:
        return key in self._fields or key in self._computed

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        body = ", ".join(f"{key}={value!r}" for key, value in self._fields.items())
        return f"Instance({body})"

    def keys(self) -> KeysView[str]:
        """Names of the stored (non-computed) fields."""
        return self._fields.keys()

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def raw(self, key: str) -> Any:
        """Stored value of a field, without resolving references."""
        return self._fields[key]

    def dump(self, _seen: Optional[Set[Reference]] = None) -> Dict[str, Any]:
        """Plain dict snapshot with references resolved; computed fields are skipped."""
        seen = _seen or set()
        return {key: _dump_value(value, seen) for key, value in self._fields.items()}


class ModelList(Sequence):
    """Frozen sequence of instances; external entries resolve by id on access."""
    __slots__ = ("_store", "_items")

    def __init__(self, store: Any, items: Tuple[Any, ...] = ()) -> None:
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_items", tuple(items))

    def _resolve(self, item: Any) -> Any:
        if isinstance(item, Reference):
            return self._store.resolve(item)
        return item

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return tuple(self._resolve(item) for item in self._items[index])
        return self._resolve(self._items[index])

    def __len__(self) -> int:
        return len(self._items)

    def __setattr__(self, name: str, value: Any) -> None:
        raise FrozenInstanceError("Model lists are frozen, use Store.set()")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ModelList):
            return self._items == other._items
        if isinstance(other, (list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ModelList({list(self._items)!r})"

    def raw(self) -> Tuple[Any, ...]:
        """Stored entries, references left unresolved."""
        return self._items

    def dump(self, _seen: Optional[Set[Reference]] = None) -> list:
        seen = _seen or set()
        return [_dump_value(item, seen) for item in self._items]
