# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import os
from pathlib import Path

import yaml
from loguru import logger
from pydantic import ValidationError

from plugport.core.exceptions import ConfigurationError
from plugport.core.types import Settings
from plugport.ext.discovery import PackageScanner
from plugport.ext.registry import ExtensionRegistry


DEFAULT_SETTINGS_FILE = "settings.plugport.yaml"


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from a YAML file.

    Resolution order:
    1. Explicit config_path parameter (if provided)
    2. PLUGPORT_SETTINGS environment variable (if set)
    3. Default: 'settings.plugport.yaml' in the current directory

    Only the default file may be absent; defaults (plus PLUGPORT_* environment
    overrides) are used in that case.

    Args:
        config_path: Optional explicit path to the configuration file.

    Returns:
        Settings object populated from the YAML configuration.

    Raises:
        FileNotFoundError: If an explicitly named configuration file does not exist.
        ConfigurationError: If the YAML is malformed or fails validation.
    """
    explicit = True
    if config_path is None:
        env_path = os.environ.get("PLUGPORT_SETTINGS")
        explicit = bool(env_path)
        config_path = Path(env_path) if env_path else Path(DEFAULT_SETTINGS_FILE)

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Configuration file not found at {config_path}")
        return Settings()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration in {config_path} must be a mapping")
        return Settings(**data)
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e


def create_registry(settings: Settings | None = None) -> ExtensionRegistry:
    """Create a registry populated by the discovery configured in settings.

    Args:
        settings: Discovery settings. Defaults to Settings() when omitted.

    Returns:
        A new ExtensionRegistry; the default registry is not touched.
    """
    settings = settings or Settings()
    registry = ExtensionRegistry()
    scanner = PackageScanner(registry, manifest=settings.manifest, section=settings.section)

    if settings.scan_default_paths:
        scanner.scan()
    if settings.scan_dirs:
        scanner.scan_subdirs(settings.scan_dirs)
    if settings.entry_point_group:
        scanner.load_entry_points(settings.entry_point_group)

    logger.debug(
        "Discovered {count} extension point(s)",
        count=len(registry.extension_points()),
        extension_points=registry.extension_points(),
    )
    return registry
