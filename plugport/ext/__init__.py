# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Extension points and the registry that connects them.

Components declare named extension points; other components register
factories against them; consumers connect at runtime to get one instance
(first success among ordered alternatives) or all available instances.

Example:
    >>> from plugport.ext import ExtensionRegistry
    >>> registry = ExtensionRegistry()
    >>> registry.register("greeter", "plain", lambda data, host, info: "hello")
    >>> error, greeter, name = await registry.connect(None, "greeter")

Discovery:
    PackageScanner registers extensions declared in package manifests and
    entry points; ModuleFactory defers importing them until first use.
"""

from plugport.ext.discovery import PackageScanner
from plugport.ext.factory import (
    Factory,
    FactoryKind,
    callback_factory,
    extension,
    normalize_factory,
)
from plugport.ext.loader import ModuleFactory
from plugport.ext.registry import (
    ExtensionRegistry,
    connect,
    get_registry,
    register,
    reset_registry,
)
from plugport.ext.resolver import Resolver


__all__ = [
    # Factories
    "Factory",
    "FactoryKind",
    "ModuleFactory",
    "normalize_factory",
    "extension",
    "callback_factory",
    # Registry
    "ExtensionRegistry",
    "Resolver",
    "get_registry",
    "reset_registry",
    "register",
    "connect",
    # Discovery
    "PackageScanner",
]
