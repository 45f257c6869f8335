# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Discovery of extensions declared by installed packages.

A package declares extensions in a manifest file at its root:

    # plugin.yaml
    extensions:
      storage:
        disk: "store.py:DiskStore"
        s3:
          module: "cloud.py"
          object: "S3Store"
          auto: false

Packages may also publish entry points in the ``plugport.extensions`` group,
named ``<extension point>:<extension name>``.

Sources that cannot be read or do not have the expected shape are skipped
without interrupting the scan of other sources.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from importlib.metadata import entry_points
from pathlib import Path

import yaml
from loguru import logger

from plugport.ext.loader import ModuleFactory
from plugport.ext.registry import ExtensionRegistry


DEFAULT_MANIFEST = "plugin.yaml"
DEFAULT_SECTION = "extensions"
DEFAULT_ENTRY_POINT_GROUP = "plugport.extensions"


class PackageScanner:
    """Registers extensions found in package manifests and entry points.

    Args:
        registry: Registry receiving the discovered extensions.
        manifest: File name of the manifest inside each package directory.
        section: Top-level manifest key holding extension declarations.
    """

    def __init__(
        self,
        registry: ExtensionRegistry,
        manifest: str = DEFAULT_MANIFEST,
        section: str = DEFAULT_SECTION,
    ) -> None:
        self.registry = registry
        self.manifest = manifest
        self.section = section

    def load_package(self, directory: Path | str) -> int:
        """Register the extensions declared by one package directory.

        Args:
            directory: Package root containing the manifest.

        Returns:
            Number of extensions registered.
        """
        directory = Path(directory)
        manifest_path = directory / self.manifest
        try:
            with open(manifest_path, encoding="utf-8") as f:
                metadata = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.debug(
                "Skipping package without readable manifest: {path}",
                path=str(manifest_path),
                error=str(e),
            )
            return 0

        declared = metadata.get(self.section) if isinstance(metadata, Mapping) else None
        if not isinstance(declared, Mapping):
            return 0

        count = 0
        for extension_point, extensions in declared.items():
            if not isinstance(extensions, Mapping):
                logger.debug(
                    "Skipping invalid extension point {extension_point} in {path}",
                    extension_point=extension_point,
                    path=str(manifest_path),
                )
                continue
            for name, descriptor in extensions.items():
                self.registry.register(
                    str(extension_point), str(name), ModuleFactory(directory, descriptor)
                )
                count += 1
        return count

    def scan_subdirs(self, dirs: Path | str | Iterable[Path | str]) -> PackageScanner:
        """Load every immediate subdirectory of the given directories as a package.

        Directories that do not exist or cannot be listed are ignored.

        Returns:
            This scanner, for chaining.
        """
        if isinstance(dirs, (str, Path)):
            dirs = [dirs]
        for directory in dirs:
            try:
                subdirs = sorted(p for p in Path(directory).iterdir() if p.is_dir())
            except OSError:
                continue
            for subdir in subdirs:
                self.load_package(subdir)
        return self

    def scan(self, dirs: Iterable[Path | str] | None = None) -> PackageScanner:
        """Scan the default package locations.

        Search paths are visited in reverse ``sys.path`` order, so packages
        earlier on ``sys.path`` register last and win name overrides. The
        directory of the main script is then loaded as a package itself.

        Args:
            dirs: Directories to scan instead of ``sys.path``.

        Returns:
            This scanner, for chaining.
        """
        if dirs is None:
            dirs = [p for p in reversed(sys.path) if p]
        self.scan_subdirs(list(dirs))

        main_dir = _main_dir()
        if main_dir is not None:
            self.load_package(main_dir)
        return self

    def load_entry_points(self, group: str = DEFAULT_ENTRY_POINT_GROUP) -> int:
        """Register extensions published as package entry points.

        Entry point names must have the form ``<extension point>:<name>``;
        others are skipped. Targets are imported on first connect.

        Returns:
            Number of extensions registered.
        """
        count = 0
        for ep in entry_points(group=group):
            extension_point, sep, name = ep.name.partition(":")
            if not sep or not extension_point or not name:
                logger.debug("Skipping malformed entry point {name}", name=ep.name, group=group)
                continue
            self.registry.register(extension_point, name, ModuleFactory(None, ep.value))
            count += 1
        return count


def _main_dir() -> Path | None:
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if not main_file:
        return None
    return Path(main_file).resolve().parent
