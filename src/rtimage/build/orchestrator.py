"""
Build orchestration for rtimage projects.

This module coordinates one runtime image build, from parsing rtimage.ini to
publishing the image archive:
- Configuration parsing and validation (rtimage.ini)
- Toolchain and execution strategy selection
- Module path resolution (dependencies + project classes)
- Linker argument construction
- Image assembly (link, resource overlay, zip)
- Artifact publishing
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..config import CONFIG_FILE_NAME, LinkConfiguration, RtImageConfig
from ..config.timestamps import parse_output_timestamp
from ..errors import ConfigError, RtImageError, ToolNotFound, UnsupportedToolVersion
from ..modules import ModuleDescriptorResolver, ModulePathResolver
from ..packages import (
    HostPlatform,
    PlatformDetector,
    ToolchainError,
    ToolchainManager,
    ToolProviderRegistry,
)
from ..project import ArtifactPublisher, ProjectModel
from .archive_creator import ArchiveCreator
from .argument_builder import ArgumentBuilder
from .executor import ForkedProcessExecutor, select_executor
from .image_assembler import ImageAssembler, image_directory
from .resources import ResourceCopier

logger = logging.getLogger(__name__)

ADD_OPTIONS_MIN_VERSION = 14

# Builds sharing a build directory are serialised
_locks_lock = threading.Lock()
_build_dir_locks: Dict[str, threading.Lock] = {}


def _build_dir_lock(build_dir: Path) -> threading.Lock:
    key = str(Path(build_dir).resolve())
    with _locks_lock:
        if key not in _build_dir_locks:
            _build_dir_locks[key] = threading.Lock()
        return _build_dir_locks[key]


@dataclass
class LinkPlan:
    """Everything decided before the linker runs."""

    project: ProjectModel
    config: LinkConfiguration
    modules: Dict[str, Path]
    module_paths: List[str]
    modules_to_add: List[str]
    output_root: Path
    image_dir: Path
    args: List[str]
    executor: object
    command_line: str = ""


@dataclass
class BuildResult:
    """Result of a complete image build."""

    success: bool
    archive_path: Optional[Path]
    image_dir: Optional[Path]
    classifier: Optional[str]
    build_time: float
    message: str
    modules: Dict[str, Path] = field(default_factory=dict)
    error: Optional[RtImageError] = None


class ImageBuildOrchestrator:
    """
    Orchestrates a complete runtime image build.

    Phases:
    1. Parse rtimage.ini and validate the environment's options
    2. Select the JDK toolchain and the execution strategy
    3. Resolve dependency modules into a module path
    4. Build the linker argument sequence
    5. Link the image, overlay resources and zip it
    6. Publish the archive

    Example usage:
        orchestrator = ImageBuildOrchestrator()
        result = orchestrator.build(project_dir=Path("."), env_name="app")
        if result.success:
            print(f"Image: {result.archive_path}")
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        registry: Optional[ToolProviderRegistry] = None,
        descriptor_resolver: Optional[ModuleDescriptorResolver] = None,
        host: Optional[HostPlatform] = None,
        verbose: bool = False,
    ):
        """
        Initialize build orchestrator.

        Args:
            environ: Environment mapping for toolchain discovery (default os.environ)
            registry: In-process tool provider registry
            descriptor_resolver: Module descriptor lookup
            host: Host platform (detected when omitted)
            verbose: Enable verbose output
        """
        self.environ = dict(os.environ if environ is None else environ)
        self.registry = registry or ToolProviderRegistry()
        self.descriptor_resolver = descriptor_resolver or ModuleDescriptorResolver()
        self.host = host or PlatformDetector.detect()
        self.verbose = verbose

    def load(self, project_dir: Path, env_name: Optional[str] = None):
        """Load project model and link configuration.

        Returns:
            Tuple of (RtImageConfig, env_name, ProjectModel, LinkConfiguration)
        """
        config_file = RtImageConfig(Path(project_dir) / CONFIG_FILE_NAME)
        if env_name is None:
            env_name = config_file.get_default_environment()
            if env_name is None:
                raise RtImageError(f"No environments found in {config_file.ini_path}")

        project = config_file.get_project()
        link_config = config_file.get_link_configuration(env_name)
        return config_file, env_name, project, link_config

    def plan(self, config_file: RtImageConfig, project: ProjectModel, config: LinkConfiguration) -> LinkPlan:
        """Validate, resolve and build arguments without side effects on disk.

        Raises:
            RtImageError: On any validation, toolchain or resolution failure
        """
        config.validate()
        parse_output_timestamp(config.output_timestamp)

        manager = ToolchainManager.from_config(config_file.get_toolchains(), self.environ, self.host)
        try:
            toolchain = manager.select(config.jdk_toolchain)
        except ToolchainError as e:
            raise ConfigError(str(e)) from e
        executor = select_executor(
            config.execution,
            toolchain,
            self.registry,
            toolchain_requested=bool(config.jdk_toolchain),
            host=self.host,
        )

        if config.add_options:
            self._require_add_options_support(executor, toolchain)

        modules = ModulePathResolver(self.descriptor_resolver).resolve(
            project.dependency_files(), project.classes_dir
        )

        modules_to_add = list(config.add_modules)
        module_paths = list(config.module_paths)
        for name, location in modules.items():
            logger.info(f" -> module: {name} ( {location} )")
            # The real module name, not the file name
            modules_to_add.append(name)
            module_paths.append(str(location))

        jmods = executor.jmods_folder(config.source_jdk_modules)
        if jmods is not None:
            module_paths.append(str(jmods))

        output_root = config.output_directory or project.build_dir / "rtimage"
        image_dir = image_directory(output_root, config.classifier)
        args = ArgumentBuilder(self.host).build(config, module_paths, modules_to_add, image_dir)

        return LinkPlan(
            project=project,
            config=config,
            modules=modules,
            module_paths=module_paths,
            modules_to_add=modules_to_add,
            output_root=Path(output_root),
            image_dir=image_dir,
            args=args,
            executor=executor,
            command_line=executor.describe(args),
        )

    def describe(self, project_dir: Path, env_name: Optional[str] = None) -> LinkPlan:
        """Resolve and build the linker command line without running it.

        Raises:
            RtImageError: On any validation, toolchain or resolution failure
        """
        config_file, env_name, project, config = self.load(Path(project_dir).resolve(), env_name)
        return self.plan(config_file, project, config)

    def _require_add_options_support(self, executor, toolchain) -> None:
        message = (
            f"parameter 'add_options' needs at least a Java {ADD_OPTIONS_MIN_VERSION} "
            f"runtime or a Java {ADD_OPTIONS_MIN_VERSION} toolchain."
        )
        if isinstance(executor, ForkedProcessExecutor):
            supported = None if toolchain is None else toolchain.is_at_least(ADD_OPTIONS_MIN_VERSION)
        else:
            provider_version = getattr(executor.provider, "version", None)
            supported = None if provider_version is None else provider_version >= ADD_OPTIONS_MIN_VERSION

        if supported is None:
            logger.warning("Unable to check toolchain java version.")
        elif not supported:
            raise UnsupportedToolVersion(message)

    def build(
        self,
        project_dir: Path,
        env_name: Optional[str] = None,
        verbose: Optional[bool] = None,
    ) -> BuildResult:
        """
        Execute a complete image build.

        Args:
            project_dir: Project root directory containing rtimage.ini
            env_name: Environment to build (defaults to the default environment)
            verbose: Override verbose setting

        Returns:
            BuildResult with status, archive and image paths
        """
        start_time = time.time()
        verbose_mode = verbose if verbose is not None else self.verbose
        classifier: Optional[str] = None
        modules: Dict[str, Path] = {}
        image_dir: Optional[Path] = None

        try:
            project_dir = Path(project_dir).resolve()
            config_file, env_name, project, config = self.load(project_dir, env_name)
            classifier = config.classifier

            if verbose_mode:
                logger.info(f"Building image for environment '{env_name}' of {project.name}")

            with _build_dir_lock(project.build_dir):
                plan = self.plan(config_file, project, config)
                modules = plan.modules
                image_dir = plan.image_dir

                copier = ResourceCopier(project.filter_properties())
                assembler = ImageAssembler(
                    plan.output_root,
                    config.classifier,
                    resource_copier=copier,
                    archive_creator=ArchiveCreator(show_progress=verbose_mode),
                )
                archive = assembler.assemble(
                    plan.executor,
                    plan.args,
                    config.additional_resources,
                    project.build_dir,
                    project.final_name,
                    config.output_timestamp,
                )

                ArtifactPublisher(project).publish(archive, config.classifier)

            return BuildResult(
                success=True,
                archive_path=archive,
                image_dir=image_dir,
                classifier=classifier,
                build_time=time.time() - start_time,
                message="Image build successful",
                modules=modules,
            )

        except ToolNotFound as e:
            return self._failure(f"Unable to find jlink command: {e}", e, start_time, classifier, image_dir, modules)
        except RtImageError as e:
            return self._failure(str(e), e, start_time, classifier, image_dir, modules)

    @staticmethod
    def _failure(message, error, start_time, classifier, image_dir, modules) -> BuildResult:
        return BuildResult(
            success=False,
            archive_path=None,
            image_dir=image_dir,
            classifier=classifier,
            build_time=time.time() - start_time,
            message=message,
            modules=modules,
            error=error,
        )
