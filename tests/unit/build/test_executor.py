"""
Unit tests for the linker execution strategies.

Tests result handling, executable lookup and strategy selection.
"""

import logging
import subprocess
import sys
from unittest.mock import Mock, patch

import pytest

from rtimage.build.executor import (
    ForkedProcessExecutor,
    InProcessExecutor,
    handle_tool_result,
    select_executor,
)
from rtimage.errors import ToolExecutionFailed, ToolInvocationError, ToolNotFound
from rtimage.packages.platform_utils import POSIX, WINDOWS
from rtimage.packages.tool_providers import ToolProviderRegistry


class FakeLinker:
    """In-process jlink stand-in."""

    name = "jlink"

    def __init__(self, exit_code=0, stdout="", stderr="", error=None):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls = []

    def run(self, out, err, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        out.write(self.stdout)
        err.write(self.stderr)
        return self.exit_code


def make_registry(provider=None):
    registry = ToolProviderRegistry(use_entry_points=False)
    if provider is not None:
        registry.register(provider)
    return registry


def make_jdk(tmp_path, tool_name="jlink"):
    bin_dir = tmp_path / "jdk" / "bin"
    bin_dir.mkdir(parents=True)
    jlink = bin_dir / tool_name
    jlink.write_text("#!/bin/sh\n")
    return jlink


class TestHandleToolResult:
    """Test suite for shared exit code handling."""

    def test_success_logs_stdout_at_info(self, caplog):
        """Test each stdout line is logged on success."""
        with caplog.at_level(logging.INFO, logger="rtimage.build.executor"):
            result = handle_tool_result(0, "line one\nline two\n", "", "jlink")

        assert result.exit_code == 0
        assert result.stdout == "line one\nline two\n"
        messages = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert (logging.INFO, "line one") in messages
        assert (logging.INFO, "line two") in messages

    def test_failure_raises_with_details(self, caplog):
        """Test a nonzero exit carries code, stderr and command line."""
        with caplog.at_level(logging.INFO, logger="rtimage.build.executor"):
            with pytest.raises(ToolExecutionFailed) as exc_info:
                handle_tool_result(2, "partial output", "bad module", '/jdk/bin/jlink "--x"')

        error = exc_info.value
        assert error.exit_code == 2
        assert error.command_line == '/jdk/bin/jlink "--x"'
        assert "Exit code: 2 - bad module" in str(error)
        assert 'Command line was: /jdk/bin/jlink "--x"' in str(error)
        assert any(
            r.levelno == logging.ERROR and r.getMessage() == "partial output"
            for r in caplog.records
        )

    def test_failure_without_stderr(self):
        """Test the message omits the stderr part when there is none."""
        with pytest.raises(ToolExecutionFailed) as exc_info:
            handle_tool_result(1, "", "", "jlink")

        assert "Exit code: 1\n" in str(exc_info.value)


class TestForkedProcessExecutor:
    """Test suite for the forked strategy."""

    def test_no_toolchain_raises_tool_not_found(self):
        """Test missing toolchain fails fast."""
        executor = ForkedProcessExecutor(None, POSIX)

        with pytest.raises(ToolNotFound, match="No toolchain found"):
            executor.locate_executable()

    def test_tool_missing_in_toolchain(self):
        """Test a toolchain without jlink fails."""
        toolchain = Mock()
        toolchain.find_tool.return_value = None

        with pytest.raises(ToolNotFound):
            ForkedProcessExecutor(toolchain, POSIX).locate_executable()

    def test_locates_executable(self, tmp_path):
        """Test the toolchain path is returned absolute and cached."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)
        executor = ForkedProcessExecutor(toolchain, POSIX)

        assert executor.locate_executable() == jlink.absolute()
        executor.locate_executable()
        toolchain.find_tool.assert_called_once_with("jlink")

    def test_directory_gets_executable_name(self, tmp_path):
        """Test a bin directory result is completed with the tool name."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink.parent)

        assert ForkedProcessExecutor(toolchain, POSIX).locate_executable() == jlink.absolute()

    def test_windows_appends_exe(self, tmp_path):
        """Test bare names get the .exe suffix on Windows."""
        jlink = make_jdk(tmp_path, "jlink.exe")
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink.with_name("jlink"))

        assert ForkedProcessExecutor(toolchain, WINDOWS).locate_executable() == jlink.absolute()

    def test_create_command_line_quotes_every_argument(self):
        """Test the whole line is one string with quoted arguments."""
        line = ForkedProcessExecutor.create_command_line("/jdk/bin/jlink", ["--a", "b c"])

        assert line == '/jdk/bin/jlink "--a" "b c"'

    def test_jmods_folder_next_to_bin(self, tmp_path):
        """Test the jmods folder defaults to <jdk>/jmods."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)

        jmods = ForkedProcessExecutor(toolchain, POSIX).jmods_folder(None)

        assert jmods == (tmp_path / "jdk" / "jmods").absolute()

    def test_jmods_folder_from_source_jdk(self, tmp_path):
        """Test source_jdk_modules overrides the toolchain JDK."""
        source = tmp_path / "target-jdk"
        source.mkdir()

        jmods = ForkedProcessExecutor(None, POSIX).jmods_folder(source)

        assert jmods == (source / "jmods").absolute()

    @patch("rtimage.build.executor.subprocess.Popen")
    def test_run_passes_single_shell_string(self, mock_popen, tmp_path):
        """Test the command reaches the shell as one string."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)
        process = Mock()
        process.communicate.return_value = ("done\n", "")
        process.returncode = 0
        mock_popen.return_value = process

        result = ForkedProcessExecutor(toolchain, POSIX).run(["--strip-debug"])

        command = mock_popen.call_args[0][0]
        assert command == f'{jlink.absolute()} "--strip-debug"'
        assert mock_popen.call_args[1]["shell"] is True
        assert mock_popen.call_args[1]["stdout"] == subprocess.PIPE
        assert mock_popen.call_args[1]["stderr"] == subprocess.PIPE
        assert result.exit_code == 0
        assert result.stdout == "done\n"

    @patch("rtimage.build.executor.subprocess.Popen")
    def test_run_nonzero_exit(self, mock_popen, tmp_path):
        """Test a failing linker raises ToolExecutionFailed."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)
        process = Mock()
        process.communicate.return_value = ("", "Error: module not found: foo")
        process.returncode = 1
        mock_popen.return_value = process

        with pytest.raises(ToolExecutionFailed) as exc_info:
            ForkedProcessExecutor(toolchain, POSIX).run(["--add-modules", "foo"])

        assert exc_info.value.exit_code == 1
        assert "module not found: foo" in str(exc_info.value)

    @patch("rtimage.build.executor.subprocess.Popen", side_effect=OSError("spawn failed"))
    def test_run_spawn_failure(self, mock_popen, tmp_path):
        """Test spawn errors become ToolInvocationError."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)

        with pytest.raises(ToolInvocationError, match="spawn failed"):
            ForkedProcessExecutor(toolchain, POSIX).run([])

    @pytest.mark.skipif(sys.platform == "win32", reason="fake jlink is a POSIX shell script")
    def test_run_undecodable_stderr(self, tmp_path):
        """Test invalid bytes from the linker still give ToolExecutionFailed."""
        jlink = make_jdk(tmp_path)
        jlink.write_text("#!/bin/sh\nprintf 'bad \\377\\376 bytes\\n' >&2\nexit 3\n")
        jlink.chmod(0o755)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)

        with pytest.raises(ToolExecutionFailed) as exc_info:
            ForkedProcessExecutor(toolchain, POSIX).run(["--verbose"])

        assert exc_info.value.exit_code == 3
        assert "bad" in str(exc_info.value)
        assert "bytes" in str(exc_info.value)

    @patch("rtimage.interrupt_utils._thread.interrupt_main")
    @patch("rtimage.build.executor.kill_process_tree")
    @patch("rtimage.build.executor.subprocess.Popen")
    def test_run_interrupted_kills_tree(self, mock_popen, mock_kill, mock_interrupt, tmp_path):
        """Test an interrupt kills the linker's process tree and propagates."""
        jlink = make_jdk(tmp_path)
        toolchain = Mock()
        toolchain.find_tool.return_value = str(jlink)
        process = Mock()
        process.pid = 4242
        process.communicate.side_effect = KeyboardInterrupt()
        mock_popen.return_value = process

        with pytest.raises(KeyboardInterrupt):
            ForkedProcessExecutor(toolchain, POSIX).run([])

        mock_kill.assert_called_once_with(4242)
        mock_interrupt.assert_called_once()


class TestInProcessExecutor:
    """Test suite for the in-process strategy."""

    def test_find_without_provider(self):
        """Test lookup failure raises ToolNotFound."""
        with pytest.raises(ToolNotFound, match="No jlink tool found"):
            InProcessExecutor.find(make_registry())

    def test_run_passes_argument_array(self):
        """Test the provider receives the raw arguments."""
        linker = FakeLinker(stdout="linked\n")
        executor = InProcessExecutor.find(make_registry(linker))

        result = executor.run(["--output", "out dir"])

        assert linker.calls == [("--output", "out dir")]
        assert result.stdout == "linked\n"
        assert result.command_line == "jlink ['--output', 'out dir']"

    def test_run_failure(self):
        """Test nonzero provider exit codes raise ToolExecutionFailed."""
        executor = InProcessExecutor(FakeLinker(exit_code=1, stderr="boom"))

        with pytest.raises(ToolExecutionFailed, match="boom"):
            executor.run([])

    def test_run_io_error(self):
        """Test provider I/O errors become ToolInvocationError."""
        executor = InProcessExecutor(FakeLinker(error=OSError("disk full")))

        with pytest.raises(ToolInvocationError, match="disk full"):
            executor.run([])

    def test_jmods_folder_only_when_configured(self, tmp_path):
        """Test providers need no jmods folder by default."""
        executor = InProcessExecutor(FakeLinker())

        assert executor.jmods_folder(None) is None
        assert executor.jmods_folder(tmp_path) == (tmp_path / "jmods").absolute()


class TestSelectExecutor:
    """Test suite for strategy selection."""

    def test_fork_mode(self):
        assert isinstance(select_executor("fork", None, make_registry(FakeLinker())), ForkedProcessExecutor)

    def test_in_process_mode(self):
        assert isinstance(select_executor("in-process", None, make_registry(FakeLinker())), InProcessExecutor)

    def test_in_process_mode_without_provider(self):
        with pytest.raises(ToolNotFound):
            select_executor("in-process", None, make_registry())

    def test_auto_prefers_provider(self):
        """Test auto mode uses a registered provider."""
        executor = select_executor("auto", Mock(), make_registry(FakeLinker()))

        assert isinstance(executor, InProcessExecutor)

    def test_auto_forks_for_requested_toolchain(self):
        """Test an explicitly requested toolchain always forks."""
        toolchain = Mock()

        executor = select_executor(
            "auto", toolchain, make_registry(FakeLinker()), toolchain_requested=True
        )

        assert isinstance(executor, ForkedProcessExecutor)
        assert executor.toolchain is toolchain

    def test_auto_without_provider_forks(self):
        assert isinstance(select_executor("auto", None, make_registry()), ForkedProcessExecutor)
