"""CLI utility functions for rtimage.

This module provides common utilities used across CLI commands including:
- Environment detection from rtimage.ini
- Error handling and formatting
- Logging setup
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rtimage.config import CONFIG_FILE_NAME, RtImageConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "rtimage.log"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Setup logging for a CLI invocation.

    Console output carries the linker output at INFO, or everything at DEBUG
    when verbose. An optional rotating log file always records DEBUG.

    Args:
        verbose: Enable DEBUG on the console
        log_file: Optional path of a rotating log file
    """
    logger = logging.getLogger("rtimage")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


def default_log_file(project_dir: Path) -> Path:
    """Location of the rotating build log: <build_dir>/rtimage.log.

    Raises:
        ConfigError: If rtimage.ini cannot be read
    """
    project = RtImageConfig(project_dir / CONFIG_FILE_NAME).get_project()
    return project.build_dir / LOG_FILE_NAME


class EnvironmentDetector:
    """Handles environment detection from rtimage.ini."""

    @staticmethod
    def detect_environment(project_dir: Path, env_name: Optional[str] = None) -> str:
        """Detect or validate environment name from rtimage.ini.

        Args:
            project_dir: Project directory containing rtimage.ini
            env_name: Optional explicit environment name

        Returns:
            Environment name to use

        Raises:
            FileNotFoundError: If rtimage.ini doesn't exist
            ValueError: If no environments found, or env_name is unknown
        """
        ini_path = project_dir / CONFIG_FILE_NAME
        if not ini_path.exists():
            raise FileNotFoundError(f"{CONFIG_FILE_NAME} not found in {project_dir}")

        config = RtImageConfig(ini_path)
        if env_name:
            if not config.has_environment(env_name):
                available = ", ".join(config.get_environments()) or "none"
                raise ValueError(
                    f"Environment '{env_name}' not found in {CONFIG_FILE_NAME}. "
                    f"Available: {available}"
                )
            return env_name

        detected_env = config.get_default_environment()
        if not detected_env:
            raise ValueError(f"No environments found in {CONFIG_FILE_NAME}")

        return detected_env


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        """Handle FileNotFoundError with standard formatting."""
        ErrorFormatter.print_error("Error: File not found", str(error))
        print(f"Make sure you're in an rtimage project directory with a {CONFIG_FILE_NAME} file.")
        sys.exit(1)

    @staticmethod
    def handle_value_error(error: ValueError) -> None:
        ErrorFormatter.print_error("Error: Invalid configuration", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
        if not project_dir.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
