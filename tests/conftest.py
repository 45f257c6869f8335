# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared fixtures and helpers for all tests."""
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import yaml

from plugport.ext.registry import ExtensionRegistry, reset_registry


@pytest.fixture
def registry() -> ExtensionRegistry:
    """Fresh, independent registry."""
    return ExtensionRegistry()


@pytest.fixture(autouse=True)
def clean_default_registry() -> Iterator[None]:
    """Reset the process-wide registry around every test."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture creating a package directory with a manifest and modules.

    Usage:
        pkg = make_package("store", {"extensions": {...}}, {"impl.py": "..."})
    """

    def _make(
        name: str,
        manifest: Any,
        files: dict[str, str] | None = None,
        manifest_name: str = "plugin.yaml",
        root: Path | None = None,
    ) -> Path:
        directory = (root or tmp_path) / name
        directory.mkdir(parents=True)
        if manifest is not None:
            text = manifest if isinstance(manifest, str) else yaml.safe_dump(manifest, sort_keys=False)
            (directory / manifest_name).write_text(text)
        for filename, source in (files or {}).items():
            target = directory / filename
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source)
        return directory

    return _make
