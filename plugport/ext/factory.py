# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Normalization of registered values into uniform asynchronous factories.

Anything registered against an extension point is turned into a Factory
once, at registration time. A Factory is awaited with ``(data, host, info)``
and completes with an ``(error, instance)`` pair.

Factory kinds:
    - SYNC: plain callable returning the instance. Exceptions it raises are
      not reported errors; they propagate out of connect().
    - ASYNC: coroutine function returning the instance. An exception raised
      while awaiting it is the reported error for that candidate.
    - CALLBACK: callable taking a fourth ``done(error, instance)`` argument
      that it calls once, possibly later.
    - NOOP: non-callable value. Completes with no instance and no error.
    - LAZY: resolved into one of the above on first call (see ModuleFactory).

Example:
    >>> @extension(auto=False)
    ... def make_cache(data, host, info):
    ...     return Cache(data)
    >>> registry.register("cache", "disk", make_cache)
"""

from __future__ import annotations

import asyncio
import copy
import inspect
from collections.abc import Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias


if TYPE_CHECKING:
    from plugport.core.types import ExtensionInfo


FactoryResult: TypeAlias = tuple[BaseException | None, Any]


class FactoryKind(StrEnum):
    """Calling convention of a registered factory."""

    SYNC = "sync"
    ASYNC = "async"
    CALLBACK = "callback"
    NOOP = "noop"
    LAZY = "lazy"


# Kinds that can be requested for a callable.
CALLABLE_KINDS = frozenset({FactoryKind.SYNC, FactoryKind.ASYNC, FactoryKind.CALLBACK})


class Factory:
    """A normalized extension factory.

    Attributes:
        raw: The value originally registered.
        kind: Calling convention used to invoke ``raw``.
        auto: When False the factory is only invoked if explicitly named.
    """

    def __init__(self, raw: Any, kind: FactoryKind, auto: bool = True) -> None:
        self.raw = raw
        self.kind = kind
        self.auto = auto

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, auto={self.auto}, raw={self.raw!r})"

    async def __call__(self, data: Any, host: Any, info: ExtensionInfo) -> FactoryResult:
        """Invoke the factory and return ``(error, instance)``.

        Args:
            data: Opaque payload from the connect options.
            host: Consumer object requesting the extension.
            info: Extension point and name of this candidate.

        Returns:
            ``(None, instance)`` on success, ``(error, None)`` when the factory
            reported an error.
        """
        if self.kind is FactoryKind.SYNC:
            return None, self.raw(data, host, info)
        if self.kind is FactoryKind.ASYNC:
            try:
                return None, await self.raw(data, host, info)
            except Exception as e:
                return e, None
        if self.kind is FactoryKind.CALLBACK:
            return await _invoke_with_callback(self.raw, data, host, info)
        return None, None


async def _invoke_with_callback(
    raw: Callable[..., Any], data: Any, host: Any, info: ExtensionInfo
) -> FactoryResult:
    """Bridge a ``done(error, instance)`` style factory onto a future.

    ``done`` may be called from any thread; only the first call counts.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[FactoryResult] = loop.create_future()

    def settle(error: BaseException | None, instance: Any) -> None:
        if not future.done():
            future.set_result((error, None) if error is not None else (None, instance))

    def done(error: BaseException | None = None, instance: Any = None) -> None:
        loop.call_soon_threadsafe(settle, error, instance)

    raw(data, host, info, done)
    return await future


def _infer_kind(raw: Any) -> FactoryKind:
    declared = getattr(raw, "factory_kind", None)
    if isinstance(declared, str):
        return FactoryKind(declared)
    if inspect.iscoroutinefunction(raw) or inspect.iscoroutinefunction(
        getattr(raw, "__call__", None)
    ):
        return FactoryKind.ASYNC
    return FactoryKind.SYNC


def normalize_factory(
    raw: Any,
    *,
    kind: FactoryKind | str | None = None,
    auto: bool | None = None,
) -> Factory:
    """Normalize a registered value into a Factory.

    Args:
        raw: Callable or arbitrary value to normalize. A Factory is returned
            as-is unless ``auto`` overrides its flag, in which case a copy is
            returned.
        kind: Explicit calling convention. Inferred when omitted: a
            ``factory_kind`` attribute on ``raw`` wins, coroutine functions
            are ASYNC and other callables SYNC.
        auto: Explicit auto flag. Defaults to an ``auto`` attribute on
            ``raw``; only a literal False disables auto-enablement.

    Returns:
        The normalized Factory.

    Raises:
        ValueError: If ``kind`` is unknown or is not a calling convention for
            a callable (NOOP and LAZY are assigned, never requested).
    """
    if isinstance(raw, Factory):
        if auto is None or auto == raw.auto:
            return raw
        factory = copy.copy(raw)
        factory.auto = auto
        return factory

    if auto is None:
        auto = getattr(raw, "auto", True) is not False

    if not callable(raw):
        return Factory(raw, FactoryKind.NOOP, auto)
    resolved_kind = FactoryKind(kind) if kind is not None else _infer_kind(raw)
    if resolved_kind not in CALLABLE_KINDS:
        raise ValueError(f"Factory kind {resolved_kind.value!r} cannot be used for a callable")
    return Factory(raw, resolved_kind, auto)


def extension(
    *, auto: bool = True, kind: FactoryKind | str | None = None
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator recording registration flags on a factory function.

    Args:
        auto: False makes the extension opt-in: it is skipped unless named.
        kind: Explicit calling convention for the decorated callable.

    Returns:
        Decorator that returns the function unchanged apart from the flags.
    """

    def decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        fn.auto = auto  # type: ignore[attr-defined]
        if kind is not None:
            fn.factory_kind = FactoryKind(kind)  # type: ignore[attr-defined]
        return fn

    return decorate


def callback_factory(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Mark ``fn(data, host, info, done)`` as a CALLBACK factory."""
    fn.factory_kind = FactoryKind.CALLBACK  # type: ignore[attr-defined]
    return fn
