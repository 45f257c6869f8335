"""Shared type definitions for Plugport.

Contains the Pydantic models describing a connection request (ConnectOptions,
ExtensionInfo), the tuples delivered by ExtensionRegistry.connect
(SingleConnection, MultiConnection, ResolvedExtension), and the Settings
model used to configure discovery.
"""
from collections.abc import Callable
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtensionInfo(BaseModel):
    """Identity of a candidate extension, passed to factories and onerror hooks.

    Attributes:
        extension: Name of the extension point being connected.
        name: Name of the candidate extension.
    """

    model_config = ConfigDict(frozen=True)

    extension: str
    name: str


ErrorHook = Callable[[BaseException, ExtensionInfo], Any]


class ConnectOptions(BaseModel):
    """Selection options for a single connect() call.

    Attributes:
        data: Opaque payload passed unmodified to every invoked factory.
        multi: When True connect all available extensions, otherwise the first
            extension that produces an instance.
        name: Explicit candidate selection. A string names one extension, a
            list names ordered alternatives.
        required: When True an empty result is reported as an error.
        onerror: Optional hook invoked once per candidate that reports an error.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = None
    multi: bool = False
    name: str | list[str] | None = None
    required: bool = False
    onerror: ErrorHook | None = None

    @property
    def explicit(self) -> bool:
        """Whether candidates were named by the caller."""
        return bool(self.name)

    def candidate_names(self) -> list[str] | None:
        """Return the explicitly requested names as a list, or None."""
        if not self.name:
            return None
        if isinstance(self.name, str):
            return [self.name]
        return list(self.name)


class ResolvedExtension(NamedTuple):
    """An instance created for one candidate, paired with its name."""

    instance: Any
    name: str


class SingleConnection(NamedTuple):
    """Delivery of a single-mode connect: (error, instance, name)."""

    error: BaseException | None
    instance: Any
    name: str | None


class MultiConnection(NamedTuple):
    """Delivery of a multi-mode connect: (error, instances, names)."""

    error: BaseException | None
    instances: list[Any]
    names: list[str]


class Settings(BaseSettings):
    """Discovery and logging settings.

    All settings can be overridden via environment variables with PLUGPORT_ prefix.
    Example: PLUGPORT_MANIFEST=extensions.yaml overrides the manifest file name.

    Attributes:
        manifest: File name of the package manifest read from each package directory.
        section: Top-level manifest key holding the extension declarations.
        scan_dirs: Directories whose subdirectories are loaded as packages.
        scan_default_paths: Also scan sys.path and the main script directory.
        entry_point_group: Entry point group to load, or None to skip.
        log_level: Minimum log level for the CLI.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLUGPORT_",
        extra="ignore",
    )

    manifest: str = Field(default="plugin.yaml", min_length=1)
    section: str = Field(default="extensions", min_length=1)
    scan_dirs: list[Path] = Field(default_factory=list)
    scan_default_paths: bool = False
    entry_point_group: str | None = "plugport.extensions"
    log_level: str = "INFO"
