"""
Unit tests for ArtifactPublisher and the project model.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from rtimage.errors import AmbiguousArtifactReplacement
from rtimage.project import ArtifactPublisher, DependencyArtifact, ProjectModel


@pytest.fixture
def project(tmp_path):
    return ProjectModel(
        name="demo",
        version="1.0",
        final_name="demo-1.0",
        project_dir=tmp_path,
        build_dir=tmp_path / "target",
        classes_dir=tmp_path / "target" / "classes",
        dependencies=[
            DependencyArtifact.from_path(Path("lib/a.jar")),
            DependencyArtifact.from_path(Path("parent.pom")),
            DependencyArtifact(path=None),
        ],
        properties={"app.mode": "prod"},
    )


def read_manifest(project):
    return json.loads((project.build_dir / "rtimage-artifacts.json").read_text())


class TestProjectModel:
    """Test suite for ProjectModel."""

    def test_dependency_files_skip_pom_and_missing(self, project):
        assert project.dependency_files() == [Path("lib/a.jar")]

    def test_filter_properties(self, project, tmp_path):
        values = project.filter_properties()

        assert values["project.name"] == "demo"
        assert values["project.build.finalName"] == "demo-1.0"
        assert values["project.build.directory"] == str(tmp_path / "target")
        assert values["app.mode"] == "prod"


class TestArtifactPublisher:
    """Test suite for ArtifactPublisher."""

    def test_unclassified_sets_main_artifact(self, project):
        archive = project.build_dir / "demo-1.0.zip"

        ArtifactPublisher(project).publish(archive, None)

        assert project.main_artifact == archive
        assert read_manifest(project) == {"main": str(archive), "attached": []}

    def test_classified_attaches(self, project):
        archive = project.build_dir / "demo-1.0-slim.zip"

        ArtifactPublisher(project).publish(archive, "slim")

        assert project.main_artifact is None
        assert read_manifest(project)["attached"] == [
            {"type": "jlink", "classifier": "slim", "file": str(archive)}
        ]

    def test_reattach_replaces_same_classifier(self, project):
        publisher = ArtifactPublisher(project)
        publisher.attach("slim", Path("old.zip"))
        publisher.attach("full", Path("full.zip"))
        publisher.attach("slim", Path("new.zip"))

        attached = read_manifest(project)["attached"]

        assert [(a["classifier"], a["file"]) for a in attached] == [
            ("full", "full.zip"),
            ("slim", "new.zip"),
        ]

    def test_existing_main_artifact_without_classifier(self, project):
        """Test an unclassified image never silently replaces the main artifact."""
        jar = project.build_dir / "demo-1.0.jar"
        jar.parent.mkdir(parents=True)
        jar.write_bytes(b"jar")
        project.main_artifact = jar

        with pytest.raises(AmbiguousArtifactReplacement):
            ArtifactPublisher(project).publish(project.build_dir / "demo-1.0.zip", None)

    def test_existing_main_artifact_with_classifier(self, project):
        jar = project.build_dir / "demo-1.0.jar"
        jar.parent.mkdir(parents=True)
        jar.write_bytes(b"jar")
        project.main_artifact = jar

        ArtifactPublisher(project).publish(project.build_dir / "demo-1.0-x.zip", "x")

        assert project.main_artifact == jar

    def test_corrupt_manifest_replaced(self, project, caplog):
        manifest = project.build_dir / "rtimage-artifacts.json"
        manifest.parent.mkdir(parents=True)
        manifest.write_text("{not json")

        ArtifactPublisher(project).attach("slim", Path("a.zip"))

        assert read_manifest(project)["attached"][0]["file"] == "a.zip"
        assert "Ignoring corrupt artifact manifest" in caplog.text

    def test_failed_write_keeps_previous_manifest(self, project):
        """Test an interrupted write leaves the old manifest and no temp file."""
        publisher = ArtifactPublisher(project)
        publisher.attach("slim", Path("a.zip"))

        with patch("rtimage.project.publisher.json.dump", side_effect=KeyboardInterrupt()):
            with pytest.raises(KeyboardInterrupt):
                publisher.attach("full", Path("b.zip"))

        assert [a["classifier"] for a in read_manifest(project)["attached"]] == ["slim"]
        assert not (project.build_dir / "rtimage-artifacts.tmp").exists()
