"""Project model.

The slice of a build project rtimage needs: where its compiled classes and
build outputs live, which dependency files it links, and its main artifact.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass(frozen=True)
class DependencyArtifact:
    """A resolved dependency of the project."""

    path: Optional[Path]
    type: str = "jar"

    @staticmethod
    def from_path(path: Path) -> "DependencyArtifact":
        artifact_type = path.suffix[1:].lower() if path.suffix else "jar"
        return DependencyArtifact(path=path, type=artifact_type)


@dataclass
class ProjectModel:
    """Build project description."""

    name: str
    version: str
    final_name: str
    project_dir: Path
    build_dir: Path
    classes_dir: Path
    dependencies: List[DependencyArtifact] = field(default_factory=list)
    main_artifact: Optional[Path] = None
    properties: Dict[str, str] = field(default_factory=dict)

    def dependency_files(self) -> List[Path]:
        """Files of all linkable dependencies.

        POM-typed dependencies and dependencies without a file are skipped.
        """
        return [
            dep.path
            for dep in self.dependencies
            if dep.path is not None and dep.type != "pom"
        ]

    def has_main_artifact_file(self) -> bool:
        """Check whether the project already produced a main artifact file."""
        return self.main_artifact is not None and self.main_artifact.is_file()

    def filter_properties(self) -> Dict[str, str]:
        """Values available to ${...} placeholders in filtered resources."""
        values = {
            "project.name": self.name,
            "project.version": self.version,
            "project.build.finalName": self.final_name,
            "project.build.directory": str(self.build_dir),
            "project.basedir": str(self.project_dir),
        }
        values.update(self.properties)
        return values
