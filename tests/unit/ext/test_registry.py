# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Unit tests for the ExtensionRegistry table and the default registry."""

import threading
from typing import Any

import pytest

from plugport.core.exceptions import InvalidFactoryError, PlugportError
from plugport.core.types import ExtensionInfo
from plugport.ext import registry as registry_module
from plugport.ext.factory import Factory, FactoryKind
from plugport.ext.registry import ExtensionRegistry, get_registry, reset_registry


def plugin(data: Any, host: Any, info: ExtensionInfo) -> str:
    return "plugin"


class TestRegister:
    def test_returns_registry_for_chaining(self, registry: ExtensionRegistry) -> None:
        assert registry.register("test.extension", "test", plugin) is registry

    @pytest.mark.parametrize("value", [None, "module:object", 1, ["a"]])
    def test_rejects_non_callable(self, registry: ExtensionRegistry, value: Any) -> None:
        with pytest.raises(InvalidFactoryError) as exc_info:
            registry.register("test.extension", "bad", value)

        assert isinstance(exc_info.value, PlugportError)
        assert exc_info.value.extension_point == "test.extension"
        assert exc_info.value.name == "bad"
        assert registry.names("test.extension") == []

    def test_accepts_prenormalized_noop_factory(self, registry: ExtensionRegistry) -> None:
        reserved = Factory("reserved", FactoryKind.NOOP)

        registry.register("test.extension", "reserved", reserved)

        assert registry.get_factory("test.extension", "reserved") is reserved

    @pytest.mark.parametrize("kind", ["lazy", "noop"])
    def test_rejects_kind_that_would_skip_the_callable(
        self, registry: ExtensionRegistry, kind: str
    ) -> None:
        with pytest.raises(ValueError):
            registry.register("test.extension", "test", plugin, kind=kind)

        assert registry.names("test.extension") == []

    def test_stores_normalized_factory(self, registry: ExtensionRegistry) -> None:
        registry.register("test.extension", "test", plugin)

        factory = registry.get_factory("test.extension", "test")

        assert isinstance(factory, Factory)
        assert factory.raw is plugin
        assert factory.kind is FactoryKind.SYNC

    def test_override_keeps_first_position(self, registry: ExtensionRegistry) -> None:
        replacement = lambda data, host, info: "replacement"  # noqa: E731

        registry.register("p", "a", plugin).register("p", "b", plugin).register("p", "a", replacement)

        assert registry.names("p") == ["a", "b"]
        assert registry.get_factory("p", "a").raw is replacement

    def test_names_never_duplicated(self, registry: ExtensionRegistry) -> None:
        sequence = ["c", "a", "c", "b", "a", "a", "d", "b"]

        for name in sequence:
            registry.register("p", name, plugin)

        assert registry.names("p") == ["c", "a", "b", "d"]

    def test_points_are_independent(self, registry: ExtensionRegistry) -> None:
        registry.register("one", "x", plugin)
        registry.register("two", "y", plugin)
        registry.register("one", "z", plugin)

        assert registry.extension_points() == ["one", "two"]
        assert registry.names("one") == ["x", "z"]
        assert registry.names("two") == ["y"]

    def test_names_returns_copy(self, registry: ExtensionRegistry) -> None:
        registry.register("p", "a", plugin)

        registry.names("p").append("tampered")

        assert registry.names("p") == ["a"]

    def test_contains(self, registry: ExtensionRegistry) -> None:
        registry.register("p", "a", plugin)

        assert ("p", "a") in registry
        assert ("p", "b") not in registry
        assert "p" not in registry

    def test_concurrent_registration_keeps_table_consistent(
        self, registry: ExtensionRegistry
    ) -> None:
        def worker(offset: int) -> None:
            for i in range(200):
                registry.register("p", f"ext-{(i + offset) % 50}", plugin)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        names = registry.names("p")
        assert sorted(names) == sorted(f"ext-{i}" for i in range(50))
        assert all(("p", name) in registry for name in names)


class TestDefaultRegistry:
    def test_get_registry_returns_singleton(self) -> None:
        assert get_registry() is get_registry()

    def test_reset_creates_new_instance(self) -> None:
        first = get_registry()
        reset_registry()

        assert get_registry() is not first

    def test_independent_instances_do_not_share_state(self) -> None:
        ExtensionRegistry().register("p", "a", plugin)

        assert ExtensionRegistry().names("p") == []
        assert get_registry().names("p") == []

    async def test_module_level_helpers_use_default_registry(self) -> None:
        assert registry_module.register("p", "a", plugin) is get_registry()

        assert await registry_module.connect(None, "p") == (None, "plugin", "a")
        assert await registry_module.connect(None, "p", multi=True) == (None, ["plugin"], ["a"])
