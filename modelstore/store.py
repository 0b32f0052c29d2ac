"""
Public API of the model store.

The Store owns every piece of shared state (cache, identity registry, compiled
configs); nothing is kept at module level, so independent stores never see
each other's entities.

Reads (``get``) are synchronous. When an adapter hook returns an awaitable,
the pending task is cached and returned; once it settles the cache entry is
overwritten with the created instance, or with the raised exception, which is
then re-raised by every later ``get`` on that key until it is invalidated.

Writes (``set``) run every synchronous step at call time, so argument errors
raise immediately. A plain adapter result is written back before ``set``
returns; an awaitable one is settled by a task scheduled on the running loop.
Either way the write-back happens whether or not the caller awaits the
returned value:

```python
store = Store()
Todo = {"id": True, "title": "", "done": False}

todo = await store.set(Todo, {"title": "write docs"})
assert store.get(Todo, todo.id) is todo
done = await store.set(todo, {"done": True})
assert done.id == todo.id and done.title == "write docs"
```

Concurrent ``set`` calls on the same entity are not serialized: the last one
to settle overwrites the cache entry.
"""
import asyncio
import inspect
import json
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Awaitable, Dict, Generator, Optional, Union

from modelstore.cache import Cache
from modelstore.compiler import Config, ListConfig, SchemaCompiler
from modelstore.errors import ArgumentError
from modelstore.instance import Instance, ModelList, Reference
from modelstore.registry import IdentityRegistry
from modelstore.settings import StoreSettings

AnyConfig = Union[Config, ListConfig]

EMPTY: Mapping = MappingProxyType({})


def stringify_parameters(parameters: Any) -> Optional[str]:
    """Canonical cache key of ``get`` parameters; mapping keys are sorted."""
    if parameters is None:
        return None
    if isinstance(parameters, Mapping):
        canonical: Dict[str, Any] = {}
        for key in sorted(parameters, key=str):
            value = parameters[key]
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise ArgumentError(
                    f"You must use primitive value for '{key}' key: {type(value).__name__}"
                )
            canonical[str(key)] = value
        return json.dumps(canonical)
    return str(parameters)


def _found(result: Any) -> Any:
    """Falsy adapter results mean "not found"; empty collections are kept."""
    if isinstance(result, (Mapping, list, tuple, Instance, ModelList)):
        return result
    return result or None


def _id_of(model: Any) -> Optional[str]:
    if isinstance(model, Instance) and "id" in model.keys():
        return model.raw("id")
    return None


def _consume(task: "asyncio.Future[Any]") -> None:
    # failures are cached or logged; mark them retrieved for the event loop
    if not task.cancelled():
        task.exception()


class Settled:
    """Awaitable of a value that is already committed to the cache."""
    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __await__(self) -> Generator[Any, None, Any]:
        return self.value
        yield  # makes this a generator

    def __repr__(self) -> str:
        return f"Settled({self.value!r})"


class Store:
    """Cache-backed store of immutable model instances."""
    _logger = logging.getLogger("ModelStore")

    def __init__(self, settings: Optional[StoreSettings] = None, cache: Optional[Cache] = None) -> None:
        self.settings = settings or StoreSettings()
        self.settings.apply_logging()
        self.cache = cache if cache is not None else Cache()
        self.registry = IdentityRegistry()
        self.compiler = SchemaCompiler(self)

    ##############################
    # Reads
    ##############################

    def get(self, definition: Any, parameters: Any = None) -> Any:
        """
        Get an instance (or a ModelList for a ``[definition]`` list).

        Returns the cached value, None when not found, or a pending task while
        an asynchronous adapter call is in flight.

        Raises:
            DefinitionError: If the definition cannot be compiled
            ArgumentError: If parameters are passed to a model without ``id``
        """
        config = self.compiler.bootstrap(definition)
        return self._fetch(config, self._key_for(config, parameters), parameters)

    async def aget(self, definition: Any, parameters: Any = None) -> Any:
        """Like ``get``, awaiting a pending adapter call."""
        value = self.get(definition, parameters)
        if isinstance(value, asyncio.Future):
            return await value
        return value

    def resolve(self, reference: Reference) -> Any:
        """Current value of the entity a reference points to."""
        return self._fetch(reference.config, reference.id, reference.id)

    def _key_for(self, config: AnyConfig, parameters: Any) -> Optional[str]:
        if config.external:
            return stringify_parameters(parameters)
        if parameters is not None:
            self._logger.error(f"Parameters passed to singleton model: {parameters!r}")
            raise ArgumentError("Model without 'id' key does not support parameters")
        return None

    def _fetch(self, config: AnyConfig, key: Optional[str], parameters: Any) -> Any:
        value = self.cache.get(config, key, lambda target, previous: self._compute(config, key, parameters))
        if isinstance(value, BaseException):
            raise value
        return value

    def _compute(self, config: AnyConfig, key: Optional[str], parameters: Any) -> Any:
        if config.get is None:
            raise ArgumentError("Provided model does not support 'get' action.")

        result = config.get(parameters)
        if not inspect.isawaitable(result):
            return config.create(_found(result))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            raise ArgumentError("Asynchronous adapters require a running event loop") from None

        self._logger.debug(f"Deferring {config!r}[{key!r}] until the adapter settles")
        task = loop.create_task(self._settle(config, key, result))
        task.add_done_callback(_consume)
        return task

    async def _settle(self, config: AnyConfig, key: Optional[str], pending: Awaitable[Any]) -> Any:
        try:
            model = config.create(_found(await pending))
        except Exception as exc:
            self._logger.error(f"Adapter get failed for {config!r}[{key!r}]: {exc}")
            self.sync(config, key, exc)
            raise
        return self.sync(config, key, model)

    ##############################
    # Writes
    ##############################

    def set(self, target: Any, values: Any = EMPTY) -> Awaitable[Optional[Instance]]:
        """
        Create or update an instance through the definition's ``set`` hook.

        ``target`` is either a live instance (update) or a definition (create).
        ``values`` of None deletes the instance. Returns an awaitable resolving
        to the stored instance, or None for a deletion: a ``Settled`` value
        when the adapter answered synchronously, else the pending task.

        Raises:
            ArgumentError: If the model has no ``set`` hook or values are invalid,
                or if the hook is asynchronous and no event loop is running
        """
        definition = self.registry.definition_of(target)
        previous = target if definition is not None else None
        config = self.compiler.bootstrap(target if definition is None else definition)

        if config.set is None:
            self._logger.error(f"Model {config!r} does not support 'set' action")
            raise ArgumentError("Provided model does not support 'set' action.")

        local = config.create(values, previous)
        key = _id_of(local) or _id_of(previous)
        result = config.set(key if previous is not None else None, local)
        if not inspect.isawaitable(result):
            return Settled(self._commit(config, key, local, result))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            raise ArgumentError("Asynchronous adapters require a running event loop") from None

        task = loop.create_task(self._acommit(config, key, local, result))
        task.add_done_callback(_consume)
        return task

    async def _acommit(self, config: Config, key: Optional[str], local: Optional[Instance], pending: Awaitable[Any]) -> Optional[Instance]:
        try:
            data = await pending
        except Exception as exc:
            self._logger.error(f"Adapter set failed for {config!r}[{key!r}]: {exc}")
            raise
        return self._commit(config, key, local, data)

    def _commit(self, config: Config, key: Optional[str], local: Optional[Instance], data: Any) -> Optional[Instance]:
        if data is None or data is local:
            model = local
        else:
            model = config.create(data)
        # the settled instance's id wins, e.g. an id assigned by the adapter
        key = _id_of(model) or key
        self._logger.info(f"Synced {config!r}[{key!r}] -> {'deleted' if model is None else 'instance'}")
        return self.sync(config, key, model)

    def sync(self, config: AnyConfig, key: Optional[str], value: Any) -> Any:
        """Force-write a value (instance, None or exception) into the cache."""
        self.cache.set(config, key, value, force=True)
        return value

    ##############################
    # Maintenance
    ##############################

    def invalidate(self, definition: Any, parameters: Any = None) -> bool:
        """Drop a cached entry so the next ``get`` calls the adapter again."""
        config = self.compiler.bootstrap(definition)
        return self.cache.invalidate(config, self._key_for(config, parameters))

    def clear(self) -> None:
        """Drop cached values and instance registrations; compiled configs stay."""
        self.cache.clear()
        self.registry.clear_instances()
        self._logger.info("Store cleared")

    def get_registry_status(self) -> Dict[str, Any]:
        return {**self.registry.get_registry_status(), "cache_entries": len(self.cache)}
