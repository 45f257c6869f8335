# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from plugport.config import create_registry, load_settings
from plugport.core.exceptions import ConfigurationError
from plugport.core.types import Settings


def test_load_settings_valid(tmp_path: Path) -> None:
    config_data = {
        "manifest": "extensions.yaml",
        "section": "plugins",
        "scan_dirs": [str(tmp_path / "vendor")],
        "entry_point_group": None,
        "log_level": "DEBUG",
    }
    settings_path = tmp_path / "settings.plugport.yaml"
    with open(settings_path, "w") as f:
        yaml.dump(config_data, f)

    settings = load_settings(config_path=settings_path)

    assert isinstance(settings, Settings)
    assert settings.manifest == "extensions.yaml"
    assert settings.section == "plugins"
    assert settings.scan_dirs == [tmp_path / "vendor"]
    assert settings.entry_point_group is None
    assert settings.log_level == "DEBUG"


def test_load_settings_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(config_path=tmp_path / "nope.yaml")


def test_load_settings_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings_path = tmp_path / "custom.yaml"
    settings_path.write_text("manifest: custom.yaml\n")
    monkeypatch.setenv("PLUGPORT_SETTINGS", str(settings_path))

    assert load_settings().manifest == "custom.yaml"


def test_load_settings_missing_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLUGPORT_SETTINGS", str(tmp_path / "missing.yaml"))

    with pytest.raises(FileNotFoundError):
        load_settings()


def test_load_settings_defaults_without_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("PLUGPORT_SETTINGS", raising=False)
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.manifest == "plugin.yaml"
    assert settings.section == "extensions"
    assert settings.scan_dirs == []
    assert settings.entry_point_group == "plugport.extensions"


def test_environment_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLUGPORT_SECTION", "addons")

    assert Settings().section == "addons"


@pytest.mark.parametrize("content", ["manifest: [unclosed", "section: ''\n", "- a\n"])
def test_load_settings_invalid(tmp_path: Path, content: str) -> None:
    settings_path = tmp_path / "settings.plugport.yaml"
    settings_path.write_text(content)

    with pytest.raises(ConfigurationError):
        load_settings(config_path=settings_path)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.plugport.yaml"
    settings_path.write_text("")

    assert load_settings(config_path=settings_path) == Settings()


async def test_create_registry_runs_configured_discovery(
    tmp_path: Path, make_package: Callable[..., Path]
) -> None:
    vendor = tmp_path / "vendor"
    make_package(
        "pkg",
        {"plugins": {"greeter": {"hello": "impl.py:hello"}}},
        {"impl.py": "def hello(data, host, info):\n    return 'hello ' + data\n"},
        manifest_name="extensions.yaml",
        root=vendor,
    )
    settings = Settings(
        manifest="extensions.yaml",
        section="plugins",
        scan_dirs=[vendor],
        entry_point_group=None,
    )

    registry = create_registry(settings)

    assert registry.names("greeter") == ["hello"]
    assert await registry.connect(None, "greeter", data="world") == (None, "hello world", "hello")


def test_create_registry_scans_defaults_and_entry_points() -> None:
    settings = Settings(scan_default_paths=True, entry_point_group="custom.group")

    with patch("plugport.config.PackageScanner") as scanner_cls:
        create_registry(settings)

    scanner = scanner_cls.return_value
    scanner.scan.assert_called_once_with()
    scanner.scan_subdirs.assert_not_called()
    scanner.load_entry_points.assert_called_once_with("custom.group")
