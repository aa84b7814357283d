"""Toolchain and platform support for rtimage.

This package locates the JDK providing the linker, the optional in-process
tool providers, and the host platform facts the linker driver needs.
"""

from .platform_utils import HostPlatform, PlatformDetector, PlatformError
from .tool_providers import ToolProvider, ToolProviderRegistry
from .toolchain import (
    JdkToolchain,
    PathToolchain,
    ToolchainError,
    ToolchainManager,
    VersionRequirement,
)

__all__ = [
    "HostPlatform",
    "PlatformDetector",
    "PlatformError",
    "ToolProvider",
    "ToolProviderRegistry",
    "JdkToolchain",
    "PathToolchain",
    "ToolchainError",
    "ToolchainManager",
    "VersionRequirement",
]
