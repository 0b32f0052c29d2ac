#!/usr/bin/env python
"""
Todo list kept in a modelstore Store, backed by an asynchronous in-memory adapter.

Shows connected reads and writes, nested external references and list queries.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from modelstore import Store, StoreSettings, connect

logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')


class FakeBackend:
    """Pretends to be a remote service; ids are assigned on create."""

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.counter = 0

    async def get(self, todo_id: str) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0.01)
        return self.rows.get(todo_id)

    async def set(self, todo_id: Optional[str], todo: Any) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0.01)
        if todo is None:
            self.rows.pop(todo_id, None)
            return None
        data = todo.dump()
        if todo_id is None:
            self.counter += 1
            data["id"] = f"todo-{self.counter}"
        self.rows[data["id"]] = data
        return data

    async def list(self, parameters: Any) -> List[str]:
        await asyncio.sleep(0.01)
        if parameters and "done" in parameters:
            return [key for key, row in self.rows.items() if row["done"] == parameters["done"]]
        return list(self.rows)


User = {"id": True, "name": ""}

Todo = {
    "id": True,
    "title": "",
    "done": False,
    "tags": [""],
    "owner": User,
    "summary": lambda todo: f"[{'x' if todo.done else ' '}] {todo.title}",
    connect: FakeBackend(),
}


async def main() -> Store:
    store = Store(StoreSettings.from_env())

    alice = await store.set(User, {"name": "Alice"})
    first = await store.set(Todo, {"title": "write docs", "tags": ["docs"], "owner": alice})
    await store.set(Todo, {"title": "release", "owner": alice.id})

    # reads are served from the cache after the first fetch
    assert await store.aget(Todo, first.id) is first

    done = await store.set(first, {"done": True})
    print(done.summary, "owned by", done.owner.name)

    await store.set(alice, {"name": "Alice Liddell"})
    print("owner after rename:", done.owner.name)

    open_todos = await store.aget([Todo], {"done": False})
    for pending in open_todos:
        todo = await pending if asyncio.isfuture(pending) else pending
        print("open:", todo.dump())

    print(store.get_registry_status())
    return store


if __name__ == "__main__":
    asyncio.run(main())
