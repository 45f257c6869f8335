# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Lazily loaded factories described by package manifests.

A descriptor names where the implementation lives; nothing is imported until
the extension is first connected. Descriptor forms:

    "pkg.module:make"        attribute ``make`` of an importable module
    "impl.py:make"           attribute ``make`` of a file in the package dir
    "./impl.py"              attribute ``create`` of a file in the package dir
    "make"                   attribute ``make`` of the package dir itself
    {"module": "impl.py", "object": "make", "auto": false, "kind": "callback"}

Failures to load degrade to a factory producing no instance.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import sys
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from loguru import logger

from plugport.ext.factory import Factory, FactoryKind, FactoryResult, normalize_factory


if TYPE_CHECKING:
    from plugport.core.types import ExtensionInfo


# Attribute used when a descriptor names a module but no object.
DEFAULT_OBJECT = "create"


class ModuleFactory(Factory):
    """Factory that imports its implementation on first call.

    The resolved factory is cached, so the import happens at most once per
    registration.

    Args:
        base_dir: Package directory relative paths are resolved against.
        descriptor: String or mapping describing the implementation.
    """

    def __init__(self, base_dir: Path | str | None, descriptor: str | Mapping[str, Any]) -> None:
        auto = True
        # Validated on first call; a bad kind degrades like a failed import.
        self._declared_kind: Any = None
        if isinstance(descriptor, Mapping):
            auto = descriptor.get("auto", True) is not False
            self._declared_kind = descriptor.get("kind")
        super().__init__(descriptor, FactoryKind.LAZY, auto)
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.resolved: Factory | None = None

    async def __call__(self, data: Any, host: Any, info: ExtensionInfo) -> FactoryResult:
        if self.resolved is None:
            self.resolved = self._resolve()
        return await self.resolved(data, host, info)

    def _resolve(self) -> Factory:
        try:
            target = self._locate()
            if target is not None:
                return normalize_factory(target, kind=self._declared_kind, auto=self.auto)
        except Exception as e:
            logger.debug(
                "Unable to load extension {descriptor}: {error}",
                descriptor=self.raw,
                base_dir=str(self.base_dir),
                error=str(e),
            )
        return normalize_factory(None, auto=self.auto)

    def _locate(self) -> Any:
        module_ref, obj = parse_descriptor(self.raw)
        module = self._import(module_ref)
        return getattr(module, obj or DEFAULT_OBJECT, None)

    def _import(self, module_ref: str | None) -> ModuleType:
        if not module_ref:
            if self.base_dir is None:
                raise ImportError("descriptor names no module and no package directory is known")
            return load_path(self.base_dir)
        if _is_path(module_ref):
            path = Path(module_ref)
            if not path.is_absolute():
                path = (self.base_dir or Path.cwd()) / path
            return load_path(path)
        return importlib.import_module(module_ref)


def parse_descriptor(descriptor: str | Mapping[str, Any]) -> tuple[str | None, str | None]:
    """Split a descriptor into ``(module reference, object name)``.

    Raises:
        TypeError: If the descriptor is neither a string nor a mapping.
    """
    if isinstance(descriptor, str):
        module_ref, sep, obj = descriptor.partition(":")
        if sep:
            return module_ref or None, obj or None
        if _is_path(descriptor):
            return descriptor, None
        return None, descriptor
    if isinstance(descriptor, Mapping):
        return descriptor.get("module"), descriptor.get("object")
    raise TypeError(f"Unsupported extension descriptor: {descriptor!r}")


def _is_path(ref: str) -> bool:
    return "/" in ref or "\\" in ref or ref.endswith(".py")


def load_path(path: Path) -> ModuleType:
    """Import a package directory or a Python file by location.

    Modules are cached in ``sys.modules`` under a name derived from the
    resolved path, so a file is executed at most once per process.

    Raises:
        ImportError: If no importable file exists at ``path``.
    """
    path = path.resolve()
    if path.is_dir():
        init = path / "__init__.py"
        search_locations: list[str] | None = [str(path)]
    else:
        init = path if path.suffix == ".py" else path.with_suffix(".py")
        search_locations = None
    if not init.is_file():
        raise ImportError(f"No Python module at {path}")

    module_name = "_plugport_" + hashlib.sha1(str(init).encode()).hexdigest()[:16]
    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(
        module_name, init, submodule_search_locations=search_locations
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import {init}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module
