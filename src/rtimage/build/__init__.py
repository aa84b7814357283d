"""Build system components for rtimage.

This package turns a link configuration into a runtime image: it builds the
linker arguments, runs the linker, overlays resources and zips the result.
"""

from .archive_creator import ARCHIVE_EXTENSION, ArchiveCreator, get_archive_file
from .argument_builder import ArgumentBuilder
from .executor import (
    ExecutionResult,
    ForkedProcessExecutor,
    InProcessExecutor,
    handle_tool_result,
    select_executor,
)
from .image_assembler import AssemblyState, ImageAssembler, image_directory
from .orchestrator import BuildResult, ImageBuildOrchestrator, LinkPlan
from .resources import ResourceCopier

__all__ = [
    "ARCHIVE_EXTENSION",
    "ArchiveCreator",
    "ArgumentBuilder",
    "AssemblyState",
    "BuildResult",
    "ExecutionResult",
    "ForkedProcessExecutor",
    "ImageAssembler",
    "ImageBuildOrchestrator",
    "InProcessExecutor",
    "LinkPlan",
    "ResourceCopier",
    "get_archive_file",
    "handle_tool_result",
    "image_directory",
    "select_executor",
]
