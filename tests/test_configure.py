"""Tests for operation configuration and setup-time validation."""

import pytest
from pydantic import ValidationError

from endpoints import ConfigurationError, format_jsonapi
from endpoints.controller import configure, validate
from endpoints.controller.configure import METHOD_DEFAULTS


def responder(envelope):
    return envelope


class TestConfigure:
    """Tests for merging options onto method defaults."""

    def test_method_defaults_apply(self):
        assert configure("create").single_result is True
        assert configure("destroy").single_result is True
        assert configure("read").single_result is None

    def test_caller_options_win(self):
        config = configure("create", {"single_result": False, "base_url": "/api"})

        assert config.single_result is False
        assert config.base_url == "/api"
        assert config.method == "create"

    def test_options_are_not_mutated(self):
        options = {"relations": ["author"], "validators": [responder]}
        configure("read", options)

        assert options == {"relations": ["author"], "validators": [responder]}

    def test_sequences_are_frozen(self):
        validators = [responder]
        config = configure("read", {"relations": ["author", "author"], "validators": validators})
        validators.append(len)

        assert config.relations == frozenset({"author"})
        assert config.validators == (responder,)

    def test_config_is_immutable(self):
        config = configure("read")
        with pytest.raises(ValidationError):
            config.base_url = "/other"

    def test_defaults_table_is_untouched(self):
        configure("create", {"single_result": False})
        assert METHOD_DEFAULTS["create"] == {"single_result": True}

    def test_unknown_method(self):
        with pytest.raises(ConfigurationError, match="Unknown method"):
            configure("patch")

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="Invalid options"):
            configure("read", {"pagination": True})

    def test_wrongly_typed_option(self):
        with pytest.raises(ConfigurationError):
            configure("read", {"mode": "embedded"})


class TestValidate:
    """Tests for adapter/configuration compatibility checks."""

    def _config(self, method, memory_store, **options):
        return configure(
            method,
            {
                "store": memory_store,
                "formatter": format_jsonapi,
                "responder": responder,
                **options,
            },
        )

    def test_valid_setup(self, memory_store, books):
        for method in ("create", "read", "update", "destroy"):
            assert validate(method, books, self._config(method, memory_store)) == []

    def test_missing_components(self, books):
        failures = validate("read", books, configure("read"))

        assert "No store specified for read." in failures
        assert "No formatter specified for read." in failures
        assert "No responder specified for read." in failures

    def test_formatter_must_be_callable(self, memory_store, books):
        config = self._config("read", memory_store, formatter="jsonapi")
        assert validate("read", books, config) == ["The formatter for read is not callable."]

    def test_validators_must_be_callable(self, memory_store, books):
        config = self._config("create", memory_store, validators=[responder, "nope"])
        failures = validate("create", books, config)

        assert len(failures) == 1
        assert "Validator #1" in failures[0]

    def test_adapter_missing_operation(self, memory_store):
        class ReadOnly:
            resource_type = "notes"
            store = memory_store
            relations = {}

            async def read(self, query):
                return None

        adapter = ReadOnly()
        assert validate("read", adapter, self._config("read", memory_store)) == []

        failures = validate("create", adapter, self._config("create", memory_store))
        assert failures == ["Adapter 'notes' does not implement 'create', required by create."]

    def test_sync_operation_is_rejected(self, memory_store):
        class Blocking:
            resource_type = "notes"
            store = memory_store

            def destroy(self, id):
                return None

        failures = validate("destroy", Blocking(), self._config("destroy", memory_store))
        assert failures == ["Adapter 'notes' does not implement 'destroy', required by destroy."]

    def test_adapter_bound_to_other_store(self, books):
        from endpoints.store import MemoryStore

        config = self._config("read", MemoryStore())
        assert validate("read", books, config) == [
            "Adapter 'books' is not bound to the configured store."
        ]

    def test_related_mode_only_for_read(self, memory_store, books):
        config = self._config("update", memory_store, mode="related")
        assert validate("update", books, config) == [
            "Mode 'related' is only supported by read, not update."
        ]

    def test_undeclared_relation(self, memory_store, books):
        config = self._config("read", memory_store, relations=["author", "publisher"])
        assert validate("read", books, config) == ["Adapter 'books' has no relation 'publisher'."]

    def test_failures_accumulate(self, books):
        config = configure("update", {"mode": "related", "relations": ["publisher"]})
        failures = validate("update", books, config)

        assert len(failures) == 5
