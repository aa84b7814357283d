"""Module path resolution.

Turns the project's dependency files (and its own compiled classes) into the
module-name -> location map handed to the linker.

Policy:
    - A file with no descriptor at all fails the build (MissingModuleDescriptor)
    - Automatic modules are skipped with a debug message, never added
    - A second explicit module with an already-seen name logs a warning and
      replaces the earlier entry (last one wins)
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..errors import MissingModuleDescriptor
from .descriptor import ModuleArtifact, ModuleDescriptorResolver

logger = logging.getLogger(__name__)


class ModulePathResolver:
    """Resolves dependency files into a module path map."""

    def __init__(self, descriptor_resolver: Optional[ModuleDescriptorResolver] = None):
        """Initialize resolver.

        Args:
            descriptor_resolver: Descriptor lookup (default inspects jars/directories)
        """
        self.descriptor_resolver = descriptor_resolver or ModuleDescriptorResolver()

    def resolve(
        self,
        dependency_files: Iterable[Path],
        local_output_dir: Optional[Path] = None,
    ) -> Dict[str, Path]:
        """Resolve dependencies into a module-name -> path map.

        Args:
            dependency_files: Dependency jars/jmods/directories, in order
            local_output_dir: The project's compiled classes directory, linked
                together with its dependencies when it exists

        Returns:
            Ordered mapping of explicit module names to their locations

        Raises:
            MissingModuleDescriptor: If a file provides no module at all
        """
        module_paths: Dict[str, Path] = {}

        for artifact in self.resolve_artifacts(dependency_files):
            self._put(module_paths, artifact)

        if local_output_dir is not None and Path(local_output_dir).exists():
            for artifact in self.resolve_artifacts(
                [Path(local_output_dir)], what="project"
            ):
                self._put(module_paths, artifact)

        return module_paths

    def resolve_artifacts(
        self, files: Iterable[Path], what: str = "dependency"
    ) -> List[ModuleArtifact]:
        """Resolve each file to a ModuleArtifact, dropping automatic modules.

        Args:
            files: Module path elements
            what: Noun used in the missing-descriptor message

        Returns:
            Explicit module artifacts in input order
        """
        artifacts: List[ModuleArtifact] = []
        for file in files:
            path = Path(file)
            descriptor = self.descriptor_resolver.resolve(path)
            if descriptor is None:
                message = (
                    f"The given {what} {path} does not have a module-info.java file. "
                    "So it can't be linked."
                )
                logger.error(message)
                raise MissingModuleDescriptor(path, message)

            if descriptor.is_automatic:
                logger.debug(f"Ignoring automatic module: {descriptor.name}")
                continue

            if descriptor.requires:
                logger.debug(f"Module {descriptor.name} requires: {', '.join(descriptor.requires)}")
            artifacts.append(ModuleArtifact(descriptor.name, path, descriptor.kind))
        return artifacts

    @staticmethod
    def _put(module_paths: Dict[str, Path], artifact: ModuleArtifact) -> None:
        if artifact.name in module_paths:
            logger.warning(f"The module name {artifact.name} does already exists.")
            # Re-insert so iteration order follows the winning entry
            del module_paths[artifact.name]
        module_paths[artifact.name] = artifact.location
