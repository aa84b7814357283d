"""
Unit tests for ImageBuildOrchestrator.

Tests the complete build flow with an in-process fake linker.
"""

import json
import zipfile
from pathlib import Path

import pytest

from rtimage.build.executor import ForkedProcessExecutor, InProcessExecutor
from rtimage.build.orchestrator import ImageBuildOrchestrator
from rtimage.errors import (
    AmbiguousArtifactReplacement,
    ConflictingLauncherSpec,
    InvalidOutputTimestamp,
    MissingModuleDescriptor,
    ToolNotFound,
    UnsupportedToolVersion,
)
from rtimage.packages.platform_utils import POSIX
from rtimage.packages.tool_providers import ToolProviderRegistry


class ImageWritingLinker:
    """Fake in-process jlink writing a tiny image to --output."""

    name = "jlink"

    def __init__(self, version=None):
        self.calls = []
        if version is not None:
            self.version = version

    def run(self, out, err, *args):
        self.calls.append(list(args))
        image = Path(args[list(args).index("--output") + 1])
        (image / "bin").mkdir(parents=True)
        (image / "bin" / "java").write_text("java")
        out.write("linked\n")
        return 0


def write_ini(project_dir: Path, env_body: str) -> Path:
    ini = project_dir / "rtimage.ini"
    ini.write_text(
        "[project]\n"
        "name = demo\n"
        "version = 1.0\n"
        "dependencies =\n"
        "    lib/*.jar\n"
        "\n"
        "[env:app]\n"
        f"{env_body}\n"
    )
    return ini


def make_orchestrator(linker=None, environ=None):
    registry = ToolProviderRegistry(use_entry_points=False)
    if linker is not None:
        registry.register(linker)
    return ImageBuildOrchestrator(environ=environ or {}, registry=registry, host=POSIX)


@pytest.fixture
def project(tmp_path, make_jar):
    lib = tmp_path / "lib"
    make_jar("alpha-1.0.jar", module_name="com.example.alpha", directory=lib)
    make_jar("beta-2.0.jar", module_name="com.example.beta", directory=lib)
    return tmp_path.resolve()


class TestImageBuildOrchestrator:
    """Test suite for ImageBuildOrchestrator."""

    def test_successful_build(self, project):
        """Test a build links resolved modules and publishes the archive."""
        write_ini(project, "execution = in-process\nstrip_debug = true\noutput_timestamp = 1570300662")
        linker = ImageWritingLinker()

        result = make_orchestrator(linker).build(project, "app")

        assert result.success, result.message
        assert result.archive_path == project / "target" / "demo-1.0.zip"
        assert result.image_dir == project / "target" / "rtimage" / "default"
        assert list(result.modules) == ["com.example.alpha", "com.example.beta"]

        args = linker.calls[0]
        assert args[0] == "--strip-debug"
        assert args[args.index("--add-modules") + 1] == "com.example.alpha,com.example.beta"
        assert str(project / "lib" / "alpha-1.0.jar") in args[args.index("--module-path") + 1]

        with zipfile.ZipFile(result.archive_path) as zf:
            assert "bin/java" in zf.namelist()

        manifest = json.loads((project / "target" / "rtimage-artifacts.json").read_text())
        assert manifest["main"] == str(result.archive_path)

    def test_classified_build_attaches(self, project):
        """Test a classifier yields an attached artifact."""
        write_ini(project, "execution = in-process\nclassifier = slim")

        result = make_orchestrator(ImageWritingLinker()).build(project, "app")

        assert result.success, result.message
        assert result.archive_path.name == "demo-1.0-slim.zip"
        manifest = json.loads((project / "target" / "rtimage-artifacts.json").read_text())
        assert manifest["attached"][0]["classifier"] == "slim"

    def test_default_environment_used(self, project):
        write_ini(project, "execution = in-process")

        result = make_orchestrator(ImageWritingLinker()).build(project)

        assert result.success, result.message

    def test_validation_fails_before_linking(self, project):
        """Test launcher conflicts abort before the linker is called."""
        write_ini(project, "execution = in-process\nlauncher = a=m\nlaunchers = b=m")
        linker = ImageWritingLinker()

        result = make_orchestrator(linker).build(project, "app")

        assert not result.success
        assert isinstance(result.error, ConflictingLauncherSpec)
        assert linker.calls == []

    def test_invalid_timestamp_fails_before_linking(self, project):
        write_ini(project, "execution = in-process\noutput_timestamp = yesterday")
        linker = ImageWritingLinker()

        result = make_orchestrator(linker).build(project, "app")

        assert isinstance(result.error, InvalidOutputTimestamp)
        assert linker.calls == []

    def test_missing_descriptor_fails(self, project):
        """Test a non-jar dependency without descriptor aborts the build."""
        write_ini(project, "execution = in-process")
        ini = project / "rtimage.ini"
        ini.write_text(ini.read_text().replace("lib/*.jar", "lib/*.jar\n    lib/broken.jmod"))
        (project / "lib" / "broken.jmod").write_bytes(b"not a zip")
        linker = ImageWritingLinker()

        result = make_orchestrator(linker).build(project, "app")

        assert isinstance(result.error, MissingModuleDescriptor)
        assert linker.calls == []

    def test_no_toolchain_reports_tool_not_found(self, project):
        write_ini(project, "execution = fork")

        result = make_orchestrator().build(project, "app")

        assert not result.success
        assert isinstance(result.error, ToolNotFound)
        assert "Unable to find jlink command" in result.message

    def test_existing_main_artifact_is_ambiguous(self, project):
        """Test replacing an existing main artifact without classifier fails."""
        write_ini(project, "execution = in-process")
        ini = project / "rtimage.ini"
        ini.write_text(ini.read_text().replace("version = 1.0\n", "version = 1.0\nmain_artifact = target/demo.jar\n"))
        (project / "target").mkdir()
        (project / "target" / "demo.jar").write_bytes(b"jar")

        result = make_orchestrator(ImageWritingLinker()).build(project, "app")

        assert isinstance(result.error, AmbiguousArtifactReplacement)

    def test_add_options_needs_newer_provider(self, project):
        write_ini(project, "execution = in-process\nadd_options = -Xmx64m")

        result = make_orchestrator(ImageWritingLinker(version=11)).build(project, "app")

        assert isinstance(result.error, UnsupportedToolVersion)

    def test_add_options_with_unknown_version_warns(self, project, caplog):
        write_ini(project, "execution = in-process\nadd_options = -Xmx64m")
        linker = ImageWritingLinker()

        result = make_orchestrator(linker).build(project, "app")

        assert result.success, result.message
        assert "--add-options=-Xmx64m" in linker.calls[0]
        assert "Unable to check toolchain java version." in caplog.text


class TestDescribe:
    """Test suite for command line description."""

    def test_describe_in_process(self, project):
        write_ini(project, "execution = in-process\nsuggest_providers = p1")

        plan = make_orchestrator(ImageWritingLinker()).describe(project, "app")

        assert isinstance(plan.executor, InProcessExecutor)
        assert plan.args[-2:] == ["--suggest-providers", "p1"]
        assert plan.command_line.startswith("jlink [")

    def test_describe_forked_uses_java_home(self, project, tmp_path):
        """Test JAVA_HOME provides jlink and the jmods folder."""
        jdk = tmp_path / "jdk"
        (jdk / "bin").mkdir(parents=True)
        (jdk / "bin" / "jlink").write_text("#!/bin/sh\n")
        write_ini(project, "execution = fork")

        plan = make_orchestrator(environ={"JAVA_HOME": str(jdk)}).describe(project, "app")

        assert isinstance(plan.executor, ForkedProcessExecutor)
        assert plan.module_paths[-1] == str((jdk / "jmods").absolute())
        assert plan.command_line.startswith(f"{(jdk / 'bin' / 'jlink').absolute()} ")
