"""
Tests for store settings, logging and registry status.
"""
import logging

import pytest
from pydantic import ValidationError

from modelstore import Store, StoreSettings
from modelstore.settings import LOGGER_NAMES


class TestStoreSettings:
    """Tests for settings validation and environment loading."""

    def test_defaults(self):
        assert StoreSettings().log_level == "WARNING"

    def test_level_is_normalized(self):
        assert StoreSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_level(self):
        with pytest.raises(ValidationError):
            StoreSettings(log_level="LOUD")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MODELSTORE_LOG_LEVEL", "info")
        assert StoreSettings.from_env().log_level == "INFO"

    def test_from_dotenv_file(self, monkeypatch, tmp_path):
        # registers cleanup of the variable set by the .env file
        monkeypatch.setenv("MODELSTORE_LOG_LEVEL", "WARNING")
        monkeypatch.delenv("MODELSTORE_LOG_LEVEL")

        dotenv_path = tmp_path / ".env"
        dotenv_path.write_text("MODELSTORE_LOG_LEVEL=error\n")
        assert StoreSettings.from_env(str(dotenv_path)).log_level == "ERROR"

    def test_store_applies_level(self):
        Store(StoreSettings(log_level="ERROR"))
        assert all(logging.getLogger(name).level == logging.ERROR for name in LOGGER_NAMES)

        Store(StoreSettings(log_level="DEBUG"))
        assert logging.getLogger("ModelStore").level == logging.DEBUG


class TestStoreStatus:
    """Tests for logging output and registry status."""

    def test_compilation_is_logged(self, store, todo_definition, caplog):
        with caplog.at_level(logging.INFO, logger="SchemaCompiler"):
            store.compiler.compile(todo_definition)
        assert "Compiled external definition (3 fields, connected)" in caplog.text

    def test_failed_compilation_is_logged(self, store, caplog):
        with caplog.at_level(logging.ERROR, logger="SchemaCompiler"):
            with pytest.raises(TypeError):
                store.compiler.compile({"value": None})
        assert "Failed to compile definition with keys ['value']" in caplog.text

    @pytest.mark.asyncio
    async def test_registry_status(self, store, todo_definition):
        assert store.get_registry_status() == {
            "configs": 0,
            "list_configs": 0,
            "instances": 0,
            "cache_entries": 0,
        }

        model = store.get(todo_definition, "1")
        await store.set(model, {"done": True})
        status = store.get_registry_status()
        assert status["configs"] == 1
        assert status["cache_entries"] == 1
        assert status["instances"] == 1

        store.clear()
        status = store.get_registry_status()
        assert status["configs"] == 1
        assert status["instances"] == 0
        assert status["cache_entries"] == 0
