"""Artifact publishing.

Attaches a produced image archive to the project: as a supplemental artifact
when it carries a classifier, otherwise as the project's main artifact. The
result is persisted to a JSON manifest in the build directory so later build
steps can pick the archives up.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import AmbiguousArtifactReplacement
from .model import ProjectModel

logger = logging.getLogger(__name__)

MANIFEST_NAME = "rtimage-artifacts.json"
ARTIFACT_TYPE = "jlink"


class ArtifactPublisher:
    """Records the artifacts of a project."""

    def __init__(self, project: ProjectModel, manifest_path: Optional[Path] = None):
        """Initialize publisher.

        Args:
            project: Project the artifacts belong to
            manifest_path: Manifest location (default <build_dir>/rtimage-artifacts.json)
        """
        self.project = project
        self.manifest_path = manifest_path or project.build_dir / MANIFEST_NAME

    def publish(self, archive: Path, classifier: Optional[str]) -> None:
        """Attach or set the archive depending on the classifier.

        Raises:
            AmbiguousArtifactReplacement: If no classifier is given and the
                project already has a main artifact file
        """
        if classifier:
            self.attach(classifier, archive)
            return

        if self.project.has_main_artifact_file():
            raise AmbiguousArtifactReplacement()
        self.set_main_artifact(archive)

    def attach(self, classifier: str, file: Path) -> None:
        """Attach a supplemental artifact."""
        manifest = self._load()
        attached = [
            a for a in manifest["attached"]
            if not (a["type"] == ARTIFACT_TYPE and a["classifier"] == classifier)
        ]
        attached.append({"type": ARTIFACT_TYPE, "classifier": classifier, "file": str(file)})
        manifest["attached"] = attached
        self._save(manifest)
        logger.info(f"Attached {ARTIFACT_TYPE} artifact [{classifier}]: {file}")

    def set_main_artifact(self, file: Path) -> None:
        """Set the project's main artifact."""
        self.project.main_artifact = file
        manifest = self._load()
        manifest["main"] = str(file)
        self._save(manifest)
        logger.info(f"Main artifact set to {file}")

    def _load(self) -> Dict[str, Any]:
        if self.manifest_path.is_file():
            try:
                data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    data.setdefault("main", None)
                    data.setdefault("attached", [])
                    return data
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring corrupt artifact manifest {self.manifest_path}: {e}")
        return {"main": None, "attached": []}

    def _save(self, manifest: Dict[str, Any]) -> None:
        """Write the manifest atomically so an interrupted build never truncates it."""
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.manifest_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(manifest, f, indent=2)

            temp_file.replace(self.manifest_path)

        except BaseException:
            temp_file.unlink(missing_ok=True)
            raise
