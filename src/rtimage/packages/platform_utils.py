"""Platform Detection Utilities.

This module provides the host facts the linker driver depends on: whether the
host is Windows (executable suffix, shell) and which character separates
entries of a path list.

The values are resolved once and handed to the components that need them, so
tests can exercise the other platform without patching globals.
"""

import os
import platform
from dataclasses import dataclass


class PlatformError(Exception):
    """Raised when platform detection fails or platform is unsupported."""

    pass


@dataclass(frozen=True)
class HostPlatform:
    """Host platform facts relevant to driving the linker."""

    is_windows: bool
    path_separator: str

    @property
    def executable_suffix(self) -> str:
        """Suffix appended to bare executable names (".exe" on Windows)."""
        return ".exe" if self.is_windows else ""

    def executable_name(self, tool: str) -> str:
        """Get the platform-specific file name of a tool."""
        return f"{tool}{self.executable_suffix}"


POSIX = HostPlatform(is_windows=False, path_separator=":")
WINDOWS = HostPlatform(is_windows=True, path_separator=";")


class PlatformDetector:
    """Detects the current host platform."""

    @staticmethod
    def detect() -> HostPlatform:
        """Detect the host platform.

        Returns:
            HostPlatform describing the running interpreter's host

        Raises:
            PlatformError: If the platform cannot be determined
        """
        system = platform.system()
        if not system:
            raise PlatformError("Unable to determine host platform")

        if system.lower().startswith("windows"):
            return HostPlatform(is_windows=True, path_separator=os.pathsep)
        return HostPlatform(is_windows=False, path_separator=os.pathsep)
