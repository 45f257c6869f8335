# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# plugport/core/exceptions.py
"""Custom exceptions for Plugport."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from plugport.core.types import ExtensionInfo


class PlugportError(Exception):
    """Base exception for all Plugport errors."""

    pass


class ConfigurationError(PlugportError):
    """Raised when required configuration is missing or invalid."""

    pass


class InvalidFactoryError(PlugportError, TypeError):
    """Raised by register() when the extension factory is not callable."""

    def __init__(self, extension_point: str, name: str) -> None:
        self.extension_point = extension_point
        self.name = name
        super().__init__(
            f"Plugin factory is not a function: {extension_point}#{name}"
        )


class ExtensionNotFoundError(PlugportError):
    """Reported by connect() when a required extension point resolved nothing.

    This error is delivered alongside the (empty) result, never raised.

    Attributes:
        extension_point: Name of the extension point that produced no instance.
    """

    def __init__(self, extension_point: str) -> None:
        self.extension_point = extension_point
        super().__init__(f"Extension not found for {extension_point}")


class CandidateError(PlugportError):
    """Failure reported by an extension factory for a single candidate.

    Factories may report any exception; this type is a convenience for
    factories that want to say the extension does not support the current
    environment.

    Attributes:
        info: Extension point and name of the failing candidate, if known.
    """

    def __init__(self, message: str, info: ExtensionInfo | None = None) -> None:
        self.info = info
        super().__init__(message)
