"""
Identity maps owned by a store.

- instance -> model definition: reverse lookup of the definition that created
  an instance, held weakly so instances can be collected
- model definition -> config and model definition -> list config: compile-once
  memoization keyed by definition identity

Definitions are plain dicts (neither hashable nor weakly referenceable), so the
config maps are keyed by ``id(definition)`` and keep the definition alive for
as long as the registry lives, which keeps the key from being reused.
"""
import logging
import weakref
from typing import Any, Dict, Optional, Tuple

from modelstore.instance import Instance


class IdentityRegistry:
    """Instance and definition identity tracking for one store."""
    _logger = logging.getLogger("IdentityRegistry")

    def __init__(self) -> None:
        self._models: "weakref.WeakKeyDictionary[Instance, Any]" = weakref.WeakKeyDictionary()
        self._configs: Dict[int, Tuple[Any, Any]] = {}
        self._lists: Dict[int, Tuple[Any, Any]] = {}

    # Instances
    def register(self, instance: Instance, definition: Any, previous: Optional[Instance] = None) -> None:
        """Record the definition of a new instance, dropping the version it supersedes."""
        self._models[instance] = definition
        if previous is not None and previous is not instance:
            self._models.pop(previous, None)
            self._logger.debug(f"Replaced registry entry {id(previous):#x} -> {id(instance):#x}")

    def definition_of(self, instance: Any) -> Optional[Any]:
        """Definition that created a live instance, None for anything else."""
        if not isinstance(instance, Instance):
            return None
        return self._models.get(instance)

    # Configs
    def get_config(self, definition: Any) -> Optional[Any]:
        entry = self._configs.get(id(definition))
        return entry[1] if entry is not None else None

    def set_config(self, definition: Any, config: Any) -> None:
        self._configs[id(definition)] = (definition, config)

    def drop_config(self, definition: Any) -> None:
        self._configs.pop(id(definition), None)

    def get_list_config(self, definition: Any) -> Optional[Any]:
        entry = self._lists.get(id(definition))
        return entry[1] if entry is not None else None

    def set_list_config(self, definition: Any, config: Any) -> None:
        self._lists[id(definition)] = (definition, config)

    def clear_instances(self) -> None:
        """Forget every instance; compiled configs are kept."""
        self._models.clear()

    def get_registry_status(self) -> Dict[str, Any]:
        return {
            "configs": len(self._configs),
            "list_configs": len(self._lists),
            "instances": len(self._models),
        }
