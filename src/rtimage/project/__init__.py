"""Project model and artifact publishing for rtimage."""

from .model import DependencyArtifact, ProjectModel
from .publisher import ArtifactPublisher

__all__ = [
    "ArtifactPublisher",
    "DependencyArtifact",
    "ProjectModel",
]
