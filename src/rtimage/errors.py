"""Exception hierarchy for rtimage.

Every failure that ends a build invocation derives from RtImageError so the
orchestrator and the CLI can report it uniformly. Validation errors are raised
before any argument is produced or any process spawned.
"""

from pathlib import Path
from typing import Optional


class RtImageError(Exception):
    """Base class for all rtimage build failures."""

    pass


class ConfigError(RtImageError):
    """Raised for unreadable or malformed rtimage.ini configuration."""

    pass


class MissingModuleDescriptor(RtImageError):
    """Raised when a dependency carries no module descriptor at all."""

    def __init__(self, path: Path, message: Optional[str] = None):
        self.path = path
        super().__init__(
            message
            or f"The given dependency {path} does not have a module-info.java file. "
            "So it can't be linked."
        )


class ConflictingLauncherSpec(RtImageError):
    """Raised when both a single launcher and a launcher list are configured."""

    def __init__(self) -> None:
        super().__init__(
            "Specify either single <launcher> or multiple <launchers>, not both."
        )


class InvalidCompressionLevel(RtImageError):
    """Raised when the compress option is outside the accepted value set."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"The given compress parameter '{value}' is not valid. "
            "Use one of 0, 1, 2 or zip-0 .. zip-9."
        )


class InvalidEndianness(RtImageError):
    """Raised when the endian option is neither 'big' nor 'little'."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"The given endian parameter {value} does not contain one of the "
            "following values: 'little' or 'big'."
        )


class InvalidOutputTimestamp(RtImageError):
    """Raised when output_timestamp cannot be parsed or is out of range."""

    pass


class UnsupportedToolVersion(RtImageError):
    """Raised when a requested option needs a newer linker."""

    pass


class ToolNotFound(RtImageError):
    """Raised when no linker executable or provider can be located."""

    pass


class ToolExecutionFailed(RtImageError):
    """Raised when the linker exits with a nonzero code."""

    def __init__(self, exit_code: int, message: str, command_line: str = ""):
        self.exit_code = exit_code
        self.command_line = command_line
        super().__init__(message)


class ToolInvocationError(RtImageError):
    """Raised when the linker could not be spawned or invoked."""

    pass


class ResourceOverlayError(RtImageError):
    """Raised when additional resources cannot be copied into the image."""

    pass


class PackagingError(RtImageError):
    """Raised when the image directory cannot be archived."""

    pass


class AmbiguousArtifactReplacement(RtImageError):
    """Raised when an unclassified image would replace an existing main artifact."""

    def __init__(self) -> None:
        super().__init__(
            "You have to use a classifier to attach supplemental artifacts to the "
            "project instead of replacing them."
        )
