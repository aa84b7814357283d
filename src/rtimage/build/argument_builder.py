"""Linker Argument Builder.

This module translates a LinkConfiguration plus the resolved module path into
the ordered argument sequence the jlink linker expects.

Design:
    - Options are validated before the first argument is emitted
    - Every option is additive: present -> flag (+ value), absent -> nothing
    - Path lists are joined with the platform separator and backslashes are
      escaped, for both execution strategies
    - --suggest-providers is a terminal directive and is always emitted last
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional

from ..config.link_config import LinkConfiguration
from ..packages.platform_utils import HostPlatform, PlatformDetector

LOCALE_DATA_MODULE = "jdk.localedata"


def escape_backslashes(value: str) -> str:
    """Double every backslash so the value survives a later quoting pass."""
    return value.replace("\\", "\\\\")


class ArgumentBuilder:
    """Builds the jlink argument sequence from configuration."""

    def __init__(self, host: Optional[HostPlatform] = None):
        """Initialize argument builder.

        Args:
            host: Host platform providing the path separator (detected when omitted)
        """
        self.host = host or PlatformDetector.detect()

    def platform_separated(self, paths: Iterable[str]) -> str:
        """Join paths with the platform path separator."""
        return self.host.path_separator.join(paths)

    def normalize_plugin_module_path(self, plugin_module_path: str) -> str:
        """Re-join a ':' or ';' separated path list with the platform separator.

        Empty segments are dropped:
            >>> ArgumentBuilder(POSIX).normalize_plugin_module_path("x;a::")
            'x:a'
        """
        segments = [s for s in re.split(r"[;:]", plugin_module_path) if s]
        return self.platform_separated(segments)

    def build(
        self,
        config: LinkConfiguration,
        module_paths: Iterable[str],
        modules_to_add: Iterable[str],
        output_image: Optional[Path] = None,
    ) -> List[str]:
        """Build the linker argument sequence.

        Args:
            config: Validated-on-entry link configuration
            module_paths: Entries of --module-path, in order
            modules_to_add: Module names for --add-modules, in order
            output_image: Image directory passed as --output

        Returns:
            Ordered list of arguments

        Raises:
            InvalidEndianness: If endian is not 'big' or 'little'
            InvalidCompressionLevel: If compress is not an accepted value
            ConflictingLauncherSpec: If launcher and launchers are both set
        """
        config.validate()
        launchers = config.effective_launchers()
        module_paths = [str(p) for p in module_paths]
        modules_to_add = list(modules_to_add)

        args: List[str] = []

        if config.strip_debug:
            args.append("--strip-debug")

        if config.bind_services:
            args.append("--bind-services")

        if config.endian is not None:
            args.extend(["--endian", config.endian])

        if config.ignore_signing_information:
            args.append("--ignore-signing-information")

        if config.compress is not None:
            args.extend(["--compress", config.compress])

        for launcher in launchers:
            args.extend(["--launcher", launcher])

        if config.add_options:
            args.append("--add-options=" + " ".join(config.add_options))

        if config.disable_plugin is not None:
            args.extend(["--disable-plugin", config.disable_plugin])

        if module_paths:
            args.extend(["--module-path", escape_backslashes(self.platform_separated(module_paths))])

        if config.no_header_files:
            args.append("--no-header-files")

        if config.no_man_pages:
            args.append("--no-man-pages")

        if config.limit_modules:
            args.extend(["--limit-modules", ",".join(config.limit_modules)])

        if modules_to_add:
            # Module names, not file names
            args.extend(["--add-modules", escape_backslashes(",".join(modules_to_add))])

        if config.include_locales:
            args.extend(["--add-modules", LOCALE_DATA_MODULE])
            args.extend(["--include-locales", ",".join(config.include_locales)])

        if config.plugin_module_path is not None:
            args.extend([
                "--plugin-module-path",
                escape_backslashes(self.normalize_plugin_module_path(config.plugin_module_path)),
            ])

        if output_image is not None:
            args.extend(["--output", str(Path(output_image).absolute())])

        if config.verbose:
            args.append("--verbose")

        # Terminal directive: the linker ignores anything after it
        if config.suggest_providers:
            args.extend(["--suggest-providers", ",".join(config.suggest_providers)])

        return args
