"""
Command-line interface for rtimage.

This module provides the `rtimage` CLI tool for building runtime images.
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rtimage import __version__
from rtimage.build import ImageBuildOrchestrator
from rtimage.cli_utils import (
    EnvironmentDetector,
    ErrorFormatter,
    PathValidator,
    default_log_file,
    setup_logging,
)
from rtimage.errors import RtImageError


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    environment: Optional[str] = None
    verbose: bool = False
    log_file: Optional[Path] = None


@dataclass
class DescribeArgs:
    """Arguments for the describe command."""

    project_dir: Path
    environment: Optional[str] = None
    verbose: bool = False


def build_command(args: BuildArgs) -> None:
    """Build a runtime image.

    Examples:
        rtimage build                  # Build default environment
        rtimage build examples/app     # Build specific project
        rtimage build -e server        # Build 'server' environment
        rtimage build --verbose        # Verbose output
    """
    print(f"rtimage v{__version__}")
    print()

    setup_logging(args.verbose)

    try:
        orchestrator = ImageBuildOrchestrator(verbose=args.verbose)

        env_name = EnvironmentDetector.detect_environment(args.project_dir, args.environment)
        setup_logging(args.verbose, args.log_file or default_log_file(args.project_dir))

        if args.verbose:
            print(f"Building project: {args.project_dir}")
            print(f"Environment: {env_name}")
            print()
        else:
            print(f"Building environment: {env_name}...")

        result = orchestrator.build(
            project_dir=args.project_dir,
            env_name=env_name,
            verbose=args.verbose,
        )

        if result.success:
            ErrorFormatter.print_success("Image build successful!")
            print()
            print(f"Image:   {result.image_dir}")
            print(f"Archive: {result.archive_path}")
            if result.modules:
                print(f"Modules: {len(result.modules)} resolved from dependencies")
            print()
            print(f"Build time: {result.build_time:.2f}s")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Image build failed!", result.message)
            sys.exit(1)

    except RtImageError as e:
        ErrorFormatter.print_error("Invalid image configuration", str(e))
        sys.exit(1)
    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except ValueError as e:
        ErrorFormatter.handle_value_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def describe_command(args: DescribeArgs) -> None:
    """Print the linker command line an environment would run.

    Examples:
        rtimage describe               # Default environment
        rtimage describe -e server     # 'server' environment
    """
    setup_logging(args.verbose)

    try:
        env_name = EnvironmentDetector.detect_environment(args.project_dir, args.environment)
        plan = ImageBuildOrchestrator(verbose=args.verbose).describe(args.project_dir, env_name)

        print(f"Environment: {env_name}")
        print(f"Image:       {plan.image_dir}")
        for name, location in plan.modules.items():
            print(f"  module {name} ( {location} )")
        print()
        print(plan.command_line)
        sys.exit(0)

    except RtImageError as e:
        ErrorFormatter.print_error("Invalid image configuration", str(e))
        sys.exit(1)
    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except ValueError as e:
        ErrorFormatter.handle_value_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def main() -> None:
    """rtimage - build custom Java runtime images."""
    parser = argparse.ArgumentParser(
        prog="rtimage",
        description="rtimage - build custom Java runtime images with jlink",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"rtimage {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Link, package and publish a runtime image",
    )
    build_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    build_parser.add_argument(
        "-e",
        "--environment",
        default=None,
        help="Image environment (default: auto-detect from rtimage.ini)",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )
    build_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Rotating debug log file (default: <build_dir>/rtimage.log)",
    )

    # Describe command
    describe_parser = subparsers.add_parser(
        "describe",
        help="Show the linker command line without running it",
    )
    describe_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    describe_parser.add_argument(
        "-e",
        "--environment",
        default=None,
        help="Image environment (default: auto-detect from rtimage.ini)",
    )
    describe_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "build":
        build_command(
            BuildArgs(
                project_dir=parsed_args.project_dir,
                environment=parsed_args.environment,
                verbose=parsed_args.verbose,
                log_file=parsed_args.log_file,
            )
        )
    elif parsed_args.command == "describe":
        describe_command(
            DescribeArgs(
                project_dir=parsed_args.project_dir,
                environment=parsed_args.environment,
                verbose=parsed_args.verbose,
            )
        )


if __name__ == "__main__":
    main()
