"""
rtimage.ini configuration parser.

This module provides functionality to parse rtimage.ini files and extract
the project model, toolchain declarations, resource sets and environment
configurations for building runtime images.
"""

import configparser
import glob
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import ConfigError
from ..project.model import DependencyArtifact, ProjectModel
from .link_config import LinkConfiguration, ResourceSpec, parse_bool, parse_lines, parse_list

CONFIG_FILE_NAME = "rtimage.ini"


class RtImageConfig:
    """
    Parser for rtimage.ini configuration files.

    Example rtimage.ini:
        [project]
        name = demo
        version = 1.0.0
        dependencies =
            lib/*.jar

        [env:app]
        strip_debug = true
        launcher = demo=com.example.demo/com.example.demo.Main

    Usage:
        config = RtImageConfig(Path("rtimage.ini"))
        project = config.get_project()
        link_config = config.get_link_configuration("app")
    """

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with an rtimage.ini file.

        Args:
            ini_path: Path to the rtimage.ini file

        Raises:
            ConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = Path(ini_path)
        self.project_dir = self.ini_path.parent

        if not self.ini_path.exists():
            raise ConfigError(f"Configuration file not found: {self.ini_path}")

        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigError(f"Failed to parse {self.ini_path}: {e}") from e

    def _section(self, name: str) -> Dict[str, str]:
        if name not in self.config:
            return {}
        try:
            return {key: (value or "").strip() for key, value in self.config[name].items()}
        except configparser.Error as e:
            raise ConfigError(f"Failed to read [{name}] in {self.ini_path}: {e}") from e

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self.project_dir / path

    def get_environments(self) -> List[str]:
        """
        Get list of all environment names defined in the config.

        Example:
            For [env:app], [env:server], returns ['app', 'server']
        """
        envs = []
        for section in self.config.sections():
            if section.startswith("env:"):
                envs.append(section.split(":", 1)[1])
        return envs

    def has_environment(self, env_name: str) -> bool:
        """Check if an environment exists in the configuration."""
        return f"env:{env_name}" in self.config

    def get_default_environment(self) -> Optional[str]:
        """
        Get the default environment.

        Returns:
            First entry of default_envs in [rtimage], else the first
            environment found, else None
        """
        default_envs = self._section("rtimage").get("default_envs", "")
        if default_envs:
            return default_envs.split(",")[0].strip()

        envs = self.get_environments()
        return envs[0] if envs else None

    def get_env_config(self, env_name: str) -> Dict[str, str]:
        """
        Get raw configuration for a specific environment.

        Values of the base [env] section are inherited; environment-specific
        values override them.

        Raises:
            ConfigError: If the environment is not defined
        """
        section = f"env:{env_name}"
        if section not in self.config:
            available = ", ".join(self.get_environments())
            raise ConfigError(
                f"Environment '{env_name}' not found. "
                + f"Available environments: {available or 'none'}"
            )

        base_config = self._section("env")
        return {**base_config, **self._section(section)}

    def get_resources(self) -> Dict[str, ResourceSpec]:
        """Get all [resource:NAME] sections keyed by name."""
        resources: Dict[str, ResourceSpec] = {}
        for section in self.config.sections():
            if not section.startswith("resource:"):
                continue
            name = section.split(":", 1)[1]
            values = self._section(section)
            directory = values.get("directory")
            if not directory:
                raise ConfigError(f"[{section}] is missing required field: directory")
            resources[name] = ResourceSpec(
                directory=self._resolve(directory),
                includes=parse_list(values.get("includes")) or ("**/*",),
                excludes=parse_list(values.get("excludes")),
                target_path=values.get("target_path") or None,
                filtering=parse_bool("filtering", values.get("filtering")),
            )
        return resources

    def get_link_configuration(self, env_name: str) -> LinkConfiguration:
        """Build the LinkConfiguration of an environment."""
        return LinkConfiguration.from_env_config(
            self.get_env_config(env_name), self.project_dir, self.get_resources()
        )

    def get_toolchains(self) -> Dict[str, Path]:
        """Get declared JDK homes from the [toolchains] section."""
        return {
            tc_id: self._resolve(home)
            for tc_id, home in self._section("toolchains").items()
            if home
        }

    def get_properties(self) -> Dict[str, str]:
        """Get [properties] used for resource filtering."""
        return self._section("properties")

    def get_project(self) -> ProjectModel:
        """
        Build the project model from the [project] section.

        Raises:
            ConfigError: If the project name is missing
        """
        values = self._section("project")
        name = values.get("name")
        if not name:
            raise ConfigError(f"[project] is missing required field: name ({self.ini_path})")

        version = values.get("version") or "0.0.0"
        build_dir = self._resolve(values.get("build_dir") or "target")
        classes_dir = (
            self._resolve(values["classes_dir"])
            if values.get("classes_dir")
            else build_dir / "classes"
        )
        main_artifact = values.get("main_artifact")

        return ProjectModel(
            name=name,
            version=version,
            final_name=values.get("final_name") or f"{name}-{version}",
            project_dir=self.project_dir,
            build_dir=build_dir,
            classes_dir=classes_dir,
            dependencies=self._expand_dependencies(values.get("dependencies")),
            main_artifact=self._resolve(main_artifact) if main_artifact else None,
            properties=self.get_properties(),
        )

    def _expand_dependencies(self, value: Optional[str]) -> List[DependencyArtifact]:
        dependencies: List[DependencyArtifact] = []
        for entry in parse_lines(value):
            pattern = str(self._resolve(entry))
            if any(ch in entry for ch in "*?["):
                matches = sorted(glob.glob(pattern, recursive=True))
            else:
                matches = [pattern]
            for match in matches:
                dependencies.append(DependencyArtifact.from_path(Path(match)))
        return dependencies
