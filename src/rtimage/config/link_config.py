"""Link configuration.

LinkConfiguration is an immutable snapshot of every option of one
environment. It is built once per build invocation from the [env:NAME]
section of rtimage.ini and validated before any argument is produced.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from ..errors import (
    ConfigError,
    ConflictingLauncherSpec,
    InvalidCompressionLevel,
    InvalidEndianness,
)

EXECUTION_MODES = ("auto", "fork", "in-process")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
_COMPRESS = re.compile(r"^(?:[0-2]|zip-[0-9])$")
_REQUIREMENT_SEPARATOR = re.compile(r",(?![^\[(]*[\])])")


def parse_bool(key: str, value: Optional[str]) -> bool:
    """Parse an INI boolean value."""
    if value is None:
        return False
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for '{key}': '{value}'")


def parse_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma or newline separated value, dropping blanks."""
    if not value:
        return ()
    items = []
    for line in value.split("\n"):
        for item in line.split(","):
            item = item.strip()
            if item:
                items.append(item)
    return tuple(items)


def parse_lines(value: Optional[str]) -> Tuple[str, ...]:
    """Split a newline separated value, keeping commas inside entries."""
    if not value:
        return ()
    return tuple(line.strip() for line in value.split("\n") if line.strip())


def parse_requirements(value: Optional[str]) -> Dict[str, str]:
    """Parse jdk_toolchain requirements ("version=[17,), id=jdk17").

    Commas inside a version range do not separate requirements.
    """
    requirements: Dict[str, str] = {}
    if not value:
        return requirements
    for item in _REQUIREMENT_SEPARATOR.split(value.replace("\n", ",")):
        item = item.strip()
        if not item:
            continue
        key, sep, val = item.partition("=")
        if not sep or not key.strip() or not val.strip():
            raise ConfigError(f"Invalid jdk_toolchain requirement: '{item}'")
        requirements[key.strip()] = val.strip()
    return requirements


def is_valid_compression(value: Optional[str]) -> bool:
    """Check a compress value: 0-2, zip-0 .. zip-9, or unset."""
    if value is None:
        return True
    return bool(_COMPRESS.match(value))


@dataclass(frozen=True)
class ResourceSpec:
    """A set of additional resources to overlay onto the image."""

    directory: Path
    includes: Tuple[str, ...] = ("**/*",)
    excludes: Tuple[str, ...] = ()
    target_path: Optional[str] = None
    filtering: bool = False


@dataclass(frozen=True)
class LinkConfiguration:
    """All user-specified linker options for one build invocation."""

    strip_debug: bool = False
    bind_services: bool = False
    endian: Optional[str] = None
    ignore_signing_information: bool = False
    compress: Optional[str] = None
    launcher: Optional[str] = None
    launchers: Optional[Tuple[str, ...]] = None
    add_options: Tuple[str, ...] = ()
    disable_plugin: Optional[str] = None
    limit_modules: Tuple[str, ...] = ()
    add_modules: Tuple[str, ...] = ()
    plugin_module_path: Optional[str] = None
    module_paths: Tuple[str, ...] = ()
    no_header_files: bool = False
    no_man_pages: bool = False
    suggest_providers: Tuple[str, ...] = ()
    include_locales: Tuple[str, ...] = ()
    verbose: bool = False
    source_jdk_modules: Optional[Path] = None
    classifier: Optional[str] = None
    output_timestamp: Optional[str] = None
    output_directory: Optional[Path] = None
    additional_resources: Tuple[ResourceSpec, ...] = ()
    jdk_toolchain: Mapping[str, str] = field(default_factory=dict)
    execution: str = "auto"

    @property
    def has_classifier(self) -> bool:
        return bool(self.classifier)

    def effective_launchers(self) -> Tuple[str, ...]:
        """Launchers to emit; a single launcher becomes a one-element list.

        Raises:
            ConflictingLauncherSpec: If both launcher forms are set
        """
        if self.launcher is not None:
            if self.launchers is not None:
                raise ConflictingLauncherSpec()
            return (self.launcher,)
        return tuple(self.launchers or ())

    def validate(self) -> None:
        """Check value ranges and mutually exclusive options.

        Raises:
            InvalidEndianness: If endian is not 'big' or 'little'
            InvalidCompressionLevel: If compress is not an accepted value
            ConflictingLauncherSpec: If launcher and launchers are both set
            ConfigError: If the execution mode is unknown
        """
        if self.endian is not None and self.endian not in ("big", "little"):
            raise InvalidEndianness(self.endian)
        if not is_valid_compression(self.compress):
            raise InvalidCompressionLevel(self.compress or "")
        self.effective_launchers()
        if self.execution not in EXECUTION_MODES:
            raise ConfigError(
                f"Unknown execution mode '{self.execution}'. "
                f"Use one of: {', '.join(EXECUTION_MODES)}"
            )

    @classmethod
    def from_env_config(
        cls,
        env_config: Mapping[str, str],
        base_dir: Path,
        resources: Optional[Mapping[str, ResourceSpec]] = None,
    ) -> "LinkConfiguration":
        """Build a configuration from an [env:NAME] section.

        Args:
            env_config: Key/value pairs of the environment
            base_dir: Directory relative paths are resolved against
            resources: Known [resource:NAME] sections

        Returns:
            LinkConfiguration snapshot

        Raises:
            ConfigError: If a value is malformed or a resource is unknown
        """
        resources = resources or {}

        def opt(key: str) -> Optional[str]:
            value = env_config.get(key)
            if value is None:
                return None
            return value.strip() or None

        def path(key: str) -> Optional[Path]:
            value = opt(key)
            if not value:
                return None
            p = Path(value)
            return p if p.is_absolute() else base_dir / p

        additional = []
        for name in parse_list(env_config.get("additional_resources")):
            if name not in resources:
                raise ConfigError(f"Unknown resource section '[resource:{name}]'")
            additional.append(resources[name])

        launchers_value = env_config.get("launchers")
        # An empty compress value stays "" so validate() rejects it
        compress = env_config.get("compress")
        return cls(
            strip_debug=parse_bool("strip_debug", env_config.get("strip_debug")),
            bind_services=parse_bool("bind_services", env_config.get("bind_services")),
            endian=opt("endian"),
            ignore_signing_information=parse_bool(
                "ignore_signing_information", env_config.get("ignore_signing_information")
            ),
            compress=compress.strip() if compress is not None else None,
            launcher=opt("launcher"),
            launchers=parse_lines(launchers_value) if launchers_value is not None else None,
            add_options=parse_lines(env_config.get("add_options")),
            disable_plugin=opt("disable_plugin"),
            limit_modules=parse_list(env_config.get("limit_modules")),
            add_modules=parse_list(env_config.get("add_modules")),
            plugin_module_path=opt("plugin_module_path"),
            module_paths=parse_lines(env_config.get("module_paths")),
            no_header_files=parse_bool("no_header_files", env_config.get("no_header_files")),
            no_man_pages=parse_bool("no_man_pages", env_config.get("no_man_pages")),
            suggest_providers=parse_list(env_config.get("suggest_providers")),
            include_locales=parse_list(env_config.get("include_locales")),
            verbose=parse_bool("verbose", env_config.get("verbose")),
            source_jdk_modules=path("source_jdk_modules"),
            classifier=opt("classifier"),
            output_timestamp=opt("output_timestamp"),
            output_directory=path("output_directory"),
            additional_resources=tuple(additional),
            jdk_toolchain=parse_requirements(env_config.get("jdk_toolchain")),
            execution=(opt("execution") or "auto").lower(),
        )
