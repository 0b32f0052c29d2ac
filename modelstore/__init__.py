"""
Cache-backed store of immutable, normalized model instances.

Model definitions are plain dicts whose values are example defaults; the store
compiles them once, builds frozen instances, keeps nested external entities
normalized by id and talks to optional storage adapters attached under the
``connect`` key.
"""
from modelstore.cache import Cache, CacheEntry
from modelstore.compiler import Config, ListConfig, SchemaCompiler
from modelstore.errors import ArgumentError, DefinitionError, FrozenInstanceError, StoreError
from modelstore.instance import Instance, ModelList, Reference
from modelstore.registry import IdentityRegistry
from modelstore.schema import connect
from modelstore.settings import StoreSettings
from modelstore.store import Settled, Store, stringify_parameters

__all__ = [
    "ArgumentError",
    "Cache",
    "CacheEntry",
    "Config",
    "DefinitionError",
    "FrozenInstanceError",
    "IdentityRegistry",
    "Instance",
    "ListConfig",
    "ModelList",
    "Reference",
    "SchemaCompiler",
    "Settled",
    "Store",
    "StoreError",
    "StoreSettings",
    "connect",
    "stringify_parameters",
]
