"""JDK toolchain discovery.

This module locates the JDK that provides the jlink linker. A toolchain is a
JDK home directory; tools live in its bin/ directory with an optional .exe
suffix on Windows.

Selection order:
    1. Configured toolchains ([toolchains] in rtimage.ini) matching the
       jdk_toolchain requirements of the environment
    2. The build-context toolchain: JAVA_HOME from the environment mapping
    3. A PATH probe for the jlink executable

The environment mapping is passed in explicitly; nothing here reads
os.environ on its own.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .platform_utils import HostPlatform, PlatformDetector

logger = logging.getLogger(__name__)


class ToolchainError(Exception):
    """Raised when toolchain operations fail."""

    pass


def parse_version(version: str) -> Tuple[int, ...]:
    """Parse a Java version string into a comparable tuple.

    Handles both the legacy "1.8.0_372" scheme and the modern "17.0.2" one.

    Args:
        version: Version string as found in a JDK release file

    Returns:
        Tuple of integers, e.g. (17, 0, 2) or (8, 0, 372)
    """
    parts = [int(p) for p in re.findall(r"\d+", version)]
    if len(parts) >= 2 and parts[0] == 1:
        parts = parts[1:]
    return tuple(parts)


class VersionRequirement:
    """A toolchain version requirement.

    Two forms are accepted:
        - "17" or "17.0": prefix match against the toolchain version
        - "[17,)", "[11,17)", "(11,21]": a bounded or open range
    """

    _RANGE = re.compile(r"^([\[(])\s*([^,]*)\s*,\s*([^\])]*)\s*([\])])$")

    def __init__(self, spec: str):
        self.spec = spec.strip()
        match = self._RANGE.match(self.spec)
        if match:
            self.is_range = True
            self.lower_inclusive = match.group(1) == "["
            self.lower = parse_version(match.group(2)) if match.group(2) else None
            self.upper = parse_version(match.group(3)) if match.group(3) else None
            self.upper_inclusive = match.group(4) == "]"
        else:
            if not self.spec or not re.match(r"^[\d._]+$", self.spec):
                raise ToolchainError(f"Invalid version requirement: '{spec}'")
            self.is_range = False
            self.prefix = parse_version(self.spec)

    def matches(self, version: Tuple[int, ...]) -> bool:
        """Check whether a toolchain version satisfies this requirement."""
        if not self.is_range:
            return version[: len(self.prefix)] == self.prefix

        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True


class JdkToolchain:
    """A JDK installation able to provide tools such as jlink."""

    def __init__(
        self,
        java_home: Path,
        toolchain_id: Optional[str] = None,
        host: Optional[HostPlatform] = None,
    ):
        """Initialize toolchain.

        Args:
            java_home: JDK home directory
            toolchain_id: Identifier from the [toolchains] section, if any
            host: Host platform (detected when omitted)
        """
        self.java_home = Path(java_home)
        self.toolchain_id = toolchain_id
        self.host = host or PlatformDetector.detect()
        self._version: Optional[Tuple[int, ...]] = None
        self._version_read = False

    def __repr__(self) -> str:
        return f"JdkToolchain(java_home={str(self.java_home)!r}, id={self.toolchain_id!r})"

    def find_tool(self, name: str) -> Optional[str]:
        """Find a tool in the JDK bin directory.

        Args:
            name: Tool name without suffix (e.g., "jlink")

        Returns:
            Path of the tool as a string, or None if not found
        """
        bin_dir = self.java_home / "bin"
        if not bin_dir.is_dir():
            return None

        # Check both with and without .exe extension (Windows compatibility)
        for ext in [".exe", ""]:
            tool_path = bin_dir / f"{name}{ext}"
            if tool_path.is_file():
                return str(tool_path)

        return None

    @property
    def version(self) -> Optional[Tuple[int, ...]]:
        """JDK version read from the release file, or None if unknown."""
        if not self._version_read:
            self._version = self._read_release_version()
            self._version_read = True
        return self._version

    def _read_release_version(self) -> Optional[Tuple[int, ...]]:
        release_file = self.java_home / "release"
        if not release_file.is_file():
            return None

        try:
            content = release_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Unable to read {release_file}: {e}")
            return None

        match = re.search(r'^JAVA_VERSION\s*=\s*"?([^"\s]+)"?', content, re.MULTILINE)
        if not match:
            return None
        version = parse_version(match.group(1))
        return version or None

    def matches_requirements(self, requirements: Mapping[str, str]) -> bool:
        """Check the toolchain against jdk_toolchain requirements.

        Args:
            requirements: Mapping with optional "version" and "id" keys

        Returns:
            True if every requirement is satisfied
        """
        for key, value in requirements.items():
            if key == "id":
                if self.toolchain_id != value:
                    return False
            elif key == "version":
                version = self.version
                if version is None or not VersionRequirement(value).matches(version):
                    return False
            else:
                raise ToolchainError(f"Unknown toolchain requirement: '{key}'")
        return True

    def is_at_least(self, major: int) -> Optional[bool]:
        """Check whether the JDK major version is at least `major`.

        Returns:
            True/False, or None when the version cannot be determined
        """
        version = self.version
        if version is None:
            return None
        return version[0] >= major


class PathToolchain:
    """Build-context toolchain that resolves tools through a PATH search.

    Used when neither a configured toolchain nor JAVA_HOME is available.
    """

    def __init__(self, search_path: str, host: HostPlatform):
        self.search_path = search_path
        self.host = host
        self.toolchain_id = None

    def __repr__(self) -> str:
        return "PathToolchain()"

    def find_tool(self, name: str) -> Optional[str]:
        return shutil.which(self.host.executable_name(name), path=self.search_path) or shutil.which(
            name, path=self.search_path
        )

    @property
    def java_home(self) -> Optional[Path]:
        tool = self.find_tool("jlink")
        if tool is None:
            return None
        return Path(tool).resolve().parent.parent

    @property
    def version(self) -> Optional[Tuple[int, ...]]:
        home = self.java_home
        if home is None:
            return None
        return JdkToolchain(home, host=self.host).version

    def is_at_least(self, major: int) -> Optional[bool]:
        version = self.version
        if version is None:
            return None
        return version[0] >= major


class ToolchainManager:
    """Selects the JDK toolchain for a build."""

    def __init__(
        self,
        toolchains: Optional[List[JdkToolchain]] = None,
        environ: Optional[Mapping[str, str]] = None,
        host: Optional[HostPlatform] = None,
    ):
        """Initialize toolchain manager.

        Args:
            toolchains: Toolchains declared in configuration
            environ: Environment mapping (JAVA_HOME, PATH); empty when omitted
            host: Host platform (detected when omitted)
        """
        self.toolchains = list(toolchains or [])
        self.environ = dict(environ or {})
        self.host = host or PlatformDetector.detect()

    @classmethod
    def from_config(
        cls,
        toolchain_homes: Dict[str, Path],
        environ: Mapping[str, str],
        host: Optional[HostPlatform] = None,
    ) -> "ToolchainManager":
        """Create a manager from the [toolchains] configuration section."""
        host = host or PlatformDetector.detect()
        toolchains = [
            JdkToolchain(home, toolchain_id=tc_id, host=host)
            for tc_id, home in toolchain_homes.items()
        ]
        return cls(toolchains, environ, host)

    def select(self, requirements: Optional[Mapping[str, str]] = None):
        """Select a toolchain.

        Args:
            requirements: jdk_toolchain requirements, if configured

        Returns:
            The selected toolchain, or None if nothing is available
        """
        if requirements:
            for toolchain in self.toolchains:
                if toolchain.matches_requirements(requirements):
                    logger.debug(f"Selected toolchain {toolchain} for {dict(requirements)}")
                    return toolchain
            logger.debug(f"No configured toolchain matches {dict(requirements)}")

        return self.get_toolchain_from_build_context()

    def get_toolchain_from_build_context(self):
        """Get the toolchain implied by the environment mapping."""
        java_home = self.environ.get("JAVA_HOME")
        if java_home:
            return JdkToolchain(Path(java_home), host=self.host)

        search_path = self.environ.get("PATH")
        if search_path:
            path_toolchain = PathToolchain(search_path, self.host)
            if path_toolchain.find_tool("jlink"):
                return path_toolchain

        logger.debug("No toolchain found in build context")
        return None
