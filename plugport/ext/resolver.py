# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Resolution of a connect request into extension instances.

Resolution is a one-shot pipeline: select candidate names, instantiate them
under the requested policy, drop candidates without an instance, then
aggregate into a SingleConnection or MultiConnection.

Policies:
    - multi: every candidate is instantiated concurrently; results keep
      candidate order regardless of completion order.
    - single: candidates are alternatives tried strictly in order. The next
      candidate is only invoked once the previous one completed without an
      instance; later candidates are never invoked after a success.

Errors reported by a factory are soft: they go to the ``onerror`` hook and
the candidate is skipped. Exceptions raised by a synchronous factory (or by
the ``onerror`` hook itself) are not caught and abort the whole resolution.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from plugport.core.exceptions import ExtensionNotFoundError
from plugport.core.types import (
    ConnectOptions,
    ExtensionInfo,
    MultiConnection,
    ResolvedExtension,
    SingleConnection,
)
from plugport.ext.factory import Factory


class Resolver:
    """Resolves connect requests against a snapshot of one extension point.

    Args:
        extension_point: Name of the extension point being connected.
        order: Registered names in registration order.
        factories: Mapping from registered name to normalized factory.
    """

    def __init__(
        self,
        extension_point: str,
        order: Sequence[str],
        factories: Mapping[str, Factory],
    ) -> None:
        self.extension_point = extension_point
        self._order = order
        self._factories = factories

    async def resolve(
        self, host: Any, options: ConnectOptions
    ) -> SingleConnection | MultiConnection:
        """Instantiate candidates for ``host`` according to ``options``.

        Args:
            host: Consumer object, passed through to factories unmodified.
            options: Selection options for this request.

        Returns:
            MultiConnection when ``options.multi`` is set, else SingleConnection.
            The error slot holds an ExtensionNotFoundError when nothing
            resolved and ``options.required`` is set.
        """
        candidates = options.candidate_names()
        if candidates is None:
            candidates = list(self._order)

        if options.multi:
            resolved = await self._instantiate_all(host, candidates, options)
        else:
            resolved = await self._instantiate_first(host, candidates, options)

        error = None
        if not resolved and options.required:
            error = ExtensionNotFoundError(self.extension_point)

        logger.debug(
            "Resolved {count} extension(s) for {extension_point}",
            count=len(resolved),
            extension_point=self.extension_point,
            names=[r.name for r in resolved],
            multi=options.multi,
        )

        if options.multi:
            return MultiConnection(
                error,
                [r.instance for r in resolved],
                [r.name for r in resolved],
            )
        if resolved:
            return SingleConnection(error, resolved[0].instance, resolved[0].name)
        return SingleConnection(error, None, None)

    async def _instantiate_all(
        self, host: Any, candidates: list[str], options: ConnectOptions
    ) -> list[ResolvedExtension]:
        # Every candidate settles before a fault is raised, first in candidate order.
        results = await asyncio.gather(
            *(self._instantiate_one(host, name, options) for name in candidates),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return [r for r in results if isinstance(r, ResolvedExtension)]

    async def _instantiate_first(
        self, host: Any, candidates: list[str], options: ConnectOptions
    ) -> list[ResolvedExtension]:
        for name in candidates:
            result = await self._instantiate_one(host, name, options)
            if result is not None:
                return [result]
        return []

    async def _instantiate_one(
        self, host: Any, name: str, options: ConnectOptions
    ) -> ResolvedExtension | None:
        """Invoke the factory for one candidate.

        Returns:
            The resolved extension, or None when the candidate is unregistered,
            not eligible, reported an error, or produced no instance.
        """
        factory = self._factories.get(name)
        # Opt-in extensions (auto=False) are only reachable by name.
        if factory is None or not (options.explicit or factory.auto):
            return None

        info = ExtensionInfo(extension=self.extension_point, name=name)
        error, instance = await factory(options.data, host, info)

        if error is not None:
            if options.onerror is None:
                logger.warning(
                    "Extension {extension_point}#{name} failed: {error}",
                    extension_point=self.extension_point,
                    name=name,
                    error=str(error),
                )
            else:
                logger.debug(
                    "Extension {extension_point}#{name} reported an error",
                    extension_point=self.extension_point,
                    name=name,
                    error=str(error),
                )
                outcome = options.onerror(error, info)
                if inspect.isawaitable(outcome):
                    await outcome
            return None

        if instance is None:
            return None
        return ResolvedExtension(instance, name)
