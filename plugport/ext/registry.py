"""Extension registry holding factories per extension point.

The registry provides a central point for registering extension factories
and connecting consumers to them. Each extension point keeps the order in
which names were first registered; registering a name again replaces its
factory without moving it.

Usage:
    from plugport.ext import ExtensionRegistry

    registry = ExtensionRegistry()
    registry.register("storage", "memory", MemoryStore)
    registry.register("storage", "disk", make_disk_store)

    # First extension that produces an instance
    error, store, name = await registry.connect(app, "storage")

    # Alternatives, most preferred first
    error, store, name = await registry.connect(
        app, "storage", name=["disk", "memory"], required=True
    )

    # Every available extension
    error, stores, names = await registry.connect(app, "storage", multi=True)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from plugport.core.exceptions import InvalidFactoryError
from plugport.core.types import ConnectOptions, MultiConnection, SingleConnection
from plugport.ext.factory import Factory, FactoryKind, normalize_factory
from plugport.ext.resolver import Resolver


# Lock for thread-safe default registry initialization.
_registry_lock = threading.Lock()


class ExtensionRegistry:
    """Registration table and entry point for connecting extensions.

    Thread-safety: register() may run concurrently with connect(). Each
    connect() resolves against a snapshot of the extension point taken when
    it starts, so later registrations never affect an in-flight request.
    """

    def __init__(self) -> None:
        """Initialize the registry with no extension points."""
        self._order: dict[str, list[str]] = {}
        self._factories: dict[str, dict[str, Factory]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        extension_point: str,
        name: str,
        factory: Any,
        *,
        auto: bool | None = None,
        kind: FactoryKind | str | None = None,
    ) -> ExtensionRegistry:
        """Register an extension.

        Args:
            extension_point: Name of the extension point.
            name: Name of the extension. Re-registering a name replaces its
                factory but keeps its original position.
            factory: Callable instantiating the extension, or an already
                normalized Factory.
            auto: Override for the auto-enablement flag.
            kind: Explicit calling convention for ``factory``.

        Returns:
            This registry, for chaining.

        Raises:
            InvalidFactoryError: If ``factory`` is not callable.
            ValueError: If ``kind`` is not sync, async or callback.
        """
        if not isinstance(factory, Factory) and not callable(factory):
            raise InvalidFactoryError(extension_point, name)

        normalized = normalize_factory(factory, kind=kind, auto=auto)

        with self._lock:
            factories = self._factories.setdefault(extension_point, {})
            overridden = name in factories
            if not overridden:
                self._order.setdefault(extension_point, []).append(name)
            factories[name] = normalized

        logger.debug(
            "{action} extension {extension_point}#{name}",
            action="Overrode" if overridden else "Registered",
            extension_point=extension_point,
            name=name,
            kind=normalized.kind.value,
            auto=normalized.auto,
        )
        return self

    async def connect(
        self,
        host: Any,
        extension_point: str,
        options: ConnectOptions | Mapping[str, Any] | None = None,
        *,
        callback: Callable[..., Any] | None = None,
        **option_kwargs: Any,
    ) -> SingleConnection | MultiConnection:
        """Create extensions on an extension point for a consumer.

        Args:
            host: The consumer of the extension point, passed to factories.
            extension_point: Name of the extension point.
            options: ConnectOptions or a mapping of its fields.
            callback: Optional receiver called once with the delivered
                ``(error, instance(s), name(s))`` values.
            **option_kwargs: ConnectOptions fields, overriding ``options``.

        Returns:
            MultiConnection ``(error, instances, names)`` when ``multi`` is set,
            otherwise SingleConnection ``(error, instance, name)``.
        """
        request = _coerce_options(options, option_kwargs)

        with self._lock:
            order = list(self._order.get(extension_point, ()))
            factories = dict(self._factories.get(extension_point, {}))

        result = await Resolver(extension_point, order, factories).resolve(host, request)
        if callback is not None:
            callback(*result)
        return result

    def extension_points(self) -> list[str]:
        """Names of extension points, in order of first registration."""
        with self._lock:
            return list(self._order)

    def names(self, extension_point: str) -> list[str]:
        """Registered extension names for a point, in registration order."""
        with self._lock:
            return list(self._order.get(extension_point, ()))

    def get_factory(self, extension_point: str, name: str) -> Factory | None:
        """Get the normalized factory registered under a name, if any."""
        with self._lock:
            return self._factories.get(extension_point, {}).get(name)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        extension_point, name = key
        return self.get_factory(extension_point, name) is not None


def _coerce_options(
    options: ConnectOptions | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> ConnectOptions:
    if isinstance(options, ConnectOptions):
        return options.model_copy(update=dict(overrides)) if overrides else options
    return ConnectOptions(**{**(options or {}), **overrides})


# Global registry instance
_registry: ExtensionRegistry | None = None


def get_registry() -> ExtensionRegistry:
    """Get the process-wide default registry.

    Creates the registry on first access (lazy initialization).
    Thread-safe via double-checked locking pattern.

    Returns:
        The default ExtensionRegistry instance.
    """
    global _registry
    if _registry is None:
        with _registry_lock:
            # Double-check after acquiring lock.
            if _registry is None:
                _registry = ExtensionRegistry()
    return _registry


def reset_registry() -> None:
    """Discard the default registry.

    Warning:
        Intended for test fixtures. The next get_registry() call creates an
        empty registry.
    """
    global _registry
    with _registry_lock:
        _registry = None


def register(
    extension_point: str, name: str, factory: Any, **kwargs: Any
) -> ExtensionRegistry:
    """Register an extension on the default registry."""
    return get_registry().register(extension_point, name, factory, **kwargs)


async def connect(
    host: Any, extension_point: str, options: Any = None, **kwargs: Any
) -> SingleConnection | MultiConnection:
    """Connect extensions from the default registry."""
    return await get_registry().connect(host, extension_point, options, **kwargs)
