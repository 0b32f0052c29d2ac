"""
Common fixtures for store tests.

Model definitions are built per test: a definition's adapter hooks are moved
into its config on first compilation, so definitions are not shared between
stores.
"""
import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from modelstore import Store, StoreSettings, connect


# ========================================================================
# Test adapters
# ========================================================================

class MemoryAdapter:
    """Dict-backed synchronous adapter recording every call."""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.records: Dict[str, Dict[str, Any]] = dict(records or {})
        self.calls: List[Tuple[str, Any]] = []

    def count(self, action: str) -> int:
        return sum(1 for name, _ in self.calls if name == action)

    def get(self, parameters: Any) -> Optional[Dict[str, Any]]:
        self.calls.append(("get", parameters))
        return self.records.get(parameters)

    def set(self, model_id: Optional[str], model: Any) -> None:
        self.calls.append(("set", model_id))
        if model is None:
            self.records.pop(model_id, None)
        else:
            self.records[model.id] = model.dump()

    def list(self, parameters: Any) -> List[str]:
        self.calls.append(("list", parameters))
        return list(self.records)


class AsyncMemoryAdapter(MemoryAdapter):
    """Same as MemoryAdapter, with coroutine hooks and optional failures."""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        super().__init__(records)
        self.failures: Dict[str, Exception] = {}

    async def get(self, parameters: Any) -> Optional[Dict[str, Any]]:
        self.calls.append(("get", parameters))
        await asyncio.sleep(0)
        if parameters in self.failures:
            raise self.failures[parameters]
        return self.records.get(parameters)

    async def set(self, model_id: Optional[str], model: Any) -> None:
        await asyncio.sleep(0)
        super().set(model_id, model)

    async def list(self, parameters: Any) -> List[str]:
        await asyncio.sleep(0)
        return super().list(parameters)

# ========================================================================
# Fixtures
# ========================================================================

@pytest.fixture
def store() -> Store:
    """Fresh store for each test."""
    return Store(StoreSettings(log_level="DEBUG"))


@pytest.fixture
def model_definition() -> Dict[str, Any]:
    """External definition using every field kind."""
    return {
        "id": True,
        "string": "value",
        "number": 1,
        "bool": False,
        "computed": lambda model: f"This is the string: {model.string}",
        "nested_object": {"value": "test"},
        "nested_external_object": {"id": True, "value": "test"},
        "nested_array_of_primitives": ["one", "two"],
        "nested_array_of_objects": [{"one": "two"}],
        "nested_array_of_external_objects": [{"id": True, "value": "test"}],
    }


@pytest.fixture
def singleton_definition() -> Dict[str, Any]:
    """Definition without 'id': one instance per store."""
    return {"value": "test"}


@pytest.fixture
def memory_adapter() -> MemoryAdapter:
    return MemoryAdapter({
        "1": {"id": "1", "title": "first", "done": False},
        "2": {"id": "2", "title": "second", "done": True},
    })


@pytest.fixture
def todo_definition(memory_adapter: MemoryAdapter) -> Dict[str, Any]:
    return {"id": True, "title": "", "done": False, connect: memory_adapter}


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    return AsyncMemoryAdapter({
        "1": {"id": "1", "title": "first", "done": False},
        "2": {"id": "2", "title": "second", "done": True},
    })


@pytest.fixture
def async_todo_definition(async_adapter: AsyncMemoryAdapter) -> Dict[str, Any]:
    return {"id": True, "title": "", "done": False, connect: async_adapter}
