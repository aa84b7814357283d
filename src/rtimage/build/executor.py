"""Linker execution strategies.

Two interchangeable ways to run jlink, both exposing
`run(args) -> ExecutionResult`:

    - ForkedProcessExecutor: locates the jlink executable through the
      toolchain and runs it in a shell, every argument double-quoted and the
      whole line passed as one command string
    - InProcessExecutor: calls a registered tool provider directly with the
      argument list and two captured text streams

Both funnel through handle_tool_result, which logs the linker output and turns
a nonzero exit code into ToolExecutionFailed. Nothing is retried.
"""

import io
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from ..errors import ToolExecutionFailed, ToolInvocationError, ToolNotFound
from ..interrupt_utils import handle_keyboard_interrupt_properly
from ..packages.platform_utils import HostPlatform, PlatformDetector
from ..packages.tool_providers import ToolProvider, ToolProviderRegistry
from .process_tree import kill_process_tree

logger = logging.getLogger(__name__)

JLINK = "jlink"
JMODS = "jmods"


@dataclass
class ExecutionResult:
    """Outcome of a linker run."""

    exit_code: int
    stdout: str
    stderr: str
    command_line: str


class LinkExecutor(Protocol):
    """Capability shared by both execution strategies."""

    def run(self, args: Sequence[str]) -> ExecutionResult:
        ...

    def jmods_folder(self, source_jdk_modules: Optional[Path]) -> Optional[Path]:
        ...

    def describe(self, args: Sequence[str]) -> str:
        ...


def handle_tool_result(
    exit_code: int, stdout: str, stderr: str, command_line: str
) -> ExecutionResult:
    """Interpret a finished linker run.

    Linker stdout is logged line by line: at info level on success, at error
    level on failure.

    Args:
        exit_code: Linker exit code
        stdout: Captured standard output
        stderr: Captured standard error
        command_line: The command line that was attempted

    Returns:
        ExecutionResult on exit code 0

    Raises:
        ToolExecutionFailed: On a nonzero exit code
    """
    output_lines = stdout.strip().splitlines() if stdout.strip() else []

    if exit_code != 0:
        for line in output_lines:
            logger.error(line)

        msg = f"\nExit code: {exit_code}"
        if stderr.strip():
            msg += f" - {stderr}"
        msg += "\n"
        msg += f"Command line was: {command_line}\n\n"
        raise ToolExecutionFailed(exit_code, msg, command_line)

    for line in output_lines:
        logger.info(line)

    return ExecutionResult(exit_code, stdout, stderr, command_line)


class ForkedProcessExecutor:
    """Runs the jlink executable of a toolchain in a child process."""

    def __init__(self, toolchain, host: Optional[HostPlatform] = None):
        """Initialize executor.

        Args:
            toolchain: Toolchain providing find_tool(), or None
            host: Host platform (detected when omitted)
        """
        self.toolchain = toolchain
        self.host = host or PlatformDetector.detect()
        self._executable: Optional[Path] = None

    def locate_executable(self) -> Path:
        """Locate the jlink executable.

        Returns:
            Absolute path to jlink

        Raises:
            ToolNotFound: If there is no toolchain or no usable executable
        """
        if self._executable is not None:
            return self._executable

        if self.toolchain is None:
            logger.error(
                "Either a JDK 9+ on the build path or a toolchain "
                "pointing to a JDK 9+ containing a jlink binary is required."
            )
            raise ToolNotFound("No toolchain found.")

        found = self.toolchain.find_tool(JLINK)
        if not found:
            raise ToolNotFound(f"The jlink executable '{found or ''}' doesn't exist or is not a file.")

        jlink = Path(found)
        if jlink.is_dir():
            jlink = jlink / self.host.executable_name(JLINK)

        if self.host.is_windows and "." not in jlink.name:
            jlink = jlink.with_name(jlink.name + ".exe")

        if not jlink.is_file():
            raise ToolNotFound(f"The jlink executable '{jlink}' doesn't exist or is not a file.")

        self._executable = jlink.absolute()
        return self._executable

    @staticmethod
    def create_command_line(executable: Path, args: Sequence[str]) -> str:
        """Build the single shell command string.

        Every argument is wrapped in double quotes and the whole line is
        handed to the shell unchanged, instead of passing an argument vector.

        Example:
            /path/to/jlink "--strip-debug" "--module-path" "foo:bar"
        """
        quoted = " ".join(f'"{arg}"' for arg in args)
        return f"{executable} {quoted}" if quoted else str(executable)

    def shell_command(self, command_line: str) -> List[str]:
        """The shell invocation wrapping a command line, for display."""
        if self.host.is_windows:
            return [os.environ.get("COMSPEC", "cmd.exe"), "/c", command_line]
        return ["/bin/sh", "-c", command_line]

    def jmods_folder(self, source_jdk_modules: Optional[Path]) -> Optional[Path]:
        """The JDK jmods folder to append to the module path.

        Uses <source_jdk_modules>/jmods when that directory exists, otherwise
        the jmods folder next to the jlink executable's bin directory.
        """
        if source_jdk_modules is not None and Path(source_jdk_modules).is_dir():
            jmods = Path(source_jdk_modules) / JMODS
        else:
            jmods = self.locate_executable().parent.parent / JMODS
        logger.debug(f" jmodsFolder: {jmods.absolute()}")
        return jmods.absolute()

    def describe(self, args: Sequence[str]) -> str:
        return self.create_command_line(self.locate_executable(), args)

    def run(self, args: Sequence[str]) -> ExecutionResult:
        """Run jlink and wait for it to exit.

        Raises:
            ToolNotFound: If jlink cannot be located
            ToolExecutionFailed: On a nonzero exit code
            ToolInvocationError: If the process cannot be spawned
        """
        executable = self.locate_executable()
        logger.info(f"Toolchain in rtimage: jlink [ {executable} ]")

        command_line = self.create_command_line(executable, args)
        logger.debug(" ".join(self.shell_command(command_line)))

        try:
            process = subprocess.Popen(
                command_line,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise ToolInvocationError(f"Unable to execute jlink command: {e}") from e

        try:
            stdout, stderr = process.communicate()
        except KeyboardInterrupt as ke:
            kill_process_tree(process.pid)
            handle_keyboard_interrupt_properly(ke)
            raise  # Never reached, but satisfies type checker
        except OSError as e:
            kill_process_tree(process.pid)
            raise ToolInvocationError(f"Unable to execute jlink command: {e}") from e

        return handle_tool_result(process.returncode, stdout or "", stderr or "", command_line)


class InProcessExecutor:
    """Runs a registered jlink tool provider in the current process."""

    def __init__(self, provider: ToolProvider):
        self.provider = provider

    @classmethod
    def find(cls, registry: ToolProviderRegistry) -> "InProcessExecutor":
        """Create an executor for the first registered jlink provider.

        Raises:
            ToolNotFound: If no provider is registered
        """
        provider = registry.find_first(JLINK)
        if provider is None:
            raise ToolNotFound("No jlink tool found.")
        return cls(provider)

    def jmods_folder(self, source_jdk_modules: Optional[Path]) -> Optional[Path]:
        """Providers need no jmods folder unless one is configured."""
        if source_jdk_modules is not None and Path(source_jdk_modules).is_dir():
            return (Path(source_jdk_modules) / JMODS).absolute()
        return None

    def describe(self, args: Sequence[str]) -> str:
        return f"{self.provider.name} {list(args)}"

    def run(self, args: Sequence[str]) -> ExecutionResult:
        """Invoke the provider synchronously.

        Raises:
            ToolExecutionFailed: On a nonzero exit code
            ToolInvocationError: If the provider raises an I/O error
        """
        actual_args = list(args)
        command_line = self.describe(actual_args)
        logger.debug(command_line)

        out = io.StringIO()
        err = io.StringIO()
        try:
            exit_code = self.provider.run(out, err, *actual_args)
        except OSError as e:
            raise ToolInvocationError(f"Unable to execute jlink command: {e}") from e

        return handle_tool_result(int(exit_code), out.getvalue(), err.getvalue(), command_line)


def select_executor(
    mode: str,
    toolchain,
    registry: ToolProviderRegistry,
    toolchain_requested: bool = False,
    host: Optional[HostPlatform] = None,
):
    """Pick the execution strategy once, before the build starts.

    Args:
        mode: "fork", "in-process" or "auto"
        toolchain: Selected toolchain, or None
        registry: Provider registry consulted for in-process execution
        toolchain_requested: True when jdk_toolchain requirements are configured
        host: Host platform

    Returns:
        ForkedProcessExecutor or InProcessExecutor

    Raises:
        ToolNotFound: If mode is "in-process" and no provider is registered
    """
    if mode == "fork":
        return ForkedProcessExecutor(toolchain, host)
    if mode == "in-process":
        return InProcessExecutor.find(registry)

    # auto: an explicitly requested toolchain always runs forked
    if not toolchain_requested:
        provider = registry.find_first(JLINK)
        if provider is not None:
            logger.debug(f"Using in-process tool provider '{provider.name}'")
            return InProcessExecutor(provider)
    return ForkedProcessExecutor(toolchain, host)
