"""
Tests for ``[definition]`` list queries.
"""
import asyncio

import pytest

from modelstore import ArgumentError, ModelList, Reference, connect


class TestConnectedLists:
    """Lists backed by an adapter 'list' hook."""

    def test_list_resolves_ids(self, store, todo_definition, memory_adapter):
        todos = store.get([todo_definition])
        assert isinstance(todos, ModelList)
        assert all(isinstance(entry, Reference) for entry in todos.raw())
        assert [todo.title for todo in todos] == ["first", "second"]
        assert store.get([todo_definition]) is todos
        assert memory_adapter.count("list") == 1

    def test_entries_are_shared_with_get(self, store, todo_definition, memory_adapter):
        todos = store.get([todo_definition])
        assert todos[0] is store.get(todo_definition, "1")
        assert memory_adapter.count("get") == 1

    @pytest.mark.asyncio
    async def test_list_observes_updates(self, store, todo_definition):
        todos = store.get([todo_definition])
        renamed = await store.set(todos[0], {"title": "renamed"})
        assert todos[0] is renamed
        assert todos.dump()[0] == {"id": "1", "title": "renamed", "done": False}

    def test_list_parameters(self, store):
        seen = []

        def list_models(parameters):
            seen.append(parameters)
            return [{"id": "a", "value": "from list"}]

        definition = {"id": True, "value": "", connect: {"list": list_models}}
        items = store.get([definition], {"status": "open"})

        assert seen == [{"status": "open"}]
        assert items[0].value == "from list"
        # entries given as data are synced into the item cache
        assert store.get(definition, "a") is items[0]

    def test_definition_without_list_hook(self, store):
        definition = {"id": True, connect: {"get": lambda parameters: None}}
        with pytest.raises(ArgumentError):
            store.get([definition])

    @pytest.mark.asyncio
    async def test_async_list(self, store, async_todo_definition):
        todos = await store.aget([async_todo_definition])
        assert len(todos) == 2

        # entries are fetched on first access
        pending = todos[0]
        assert isinstance(pending, asyncio.Future)
        model = await pending
        assert model.title == "first"
        assert todos[0] is model


class TestDisconnectedLists:
    """Lists of models kept only in the store cache."""

    @pytest.mark.asyncio
    async def test_lists_cached_models(self, store, model_definition):
        first = await store.set(model_definition, {"string": "a"})
        second = await store.set(model_definition, {"string": "b"})

        models = store.get([model_definition])
        assert [model.id for model in models] == [first.id, second.id]
        assert models[1] is second

    @pytest.mark.asyncio
    async def test_invalidate_refreshes_list(self, store, model_definition):
        first = await store.set(model_definition)
        assert len(store.get([model_definition])) == 1

        second = await store.set(model_definition)
        assert len(store.get([model_definition])) == 1
        assert store.invalidate([model_definition]) is True
        assert [model.id for model in store.get([model_definition])] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_deleted_models_are_skipped(self, store, model_definition):
        first = await store.set(model_definition)
        await store.set(first, None)
        assert len(store.get([model_definition])) == 0

    def test_singleton_list(self, store, singleton_definition):
        model = store.get(singleton_definition)
        models = store.get([singleton_definition])
        assert list(models) == [model]

    def test_parameters_are_rejected(self, store, model_definition):
        with pytest.raises(ArgumentError):
            store.get([model_definition], {"page": 1})
