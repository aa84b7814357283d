"""Runtime image assembly.

ImageAssembler owns the output directory of one image build and walks it
through:

    IDLE -> OUTPUT_PREPARED -> LINKED -> RESOURCES_OVERLAID -> PACKAGED

Any failure leaves the assembler in FAILED. Output already produced by the
linker stays on disk for inspection; the next build deletes it.
"""

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..config.link_config import ResourceSpec
from ..config.timestamps import parse_output_timestamp
from ..errors import PackagingError, RtImageError
from .archive_creator import ArchiveCreator, get_archive_file
from .executor import ExecutionResult, LinkExecutor
from .resources import ResourceCopier

logger = logging.getLogger(__name__)


class AssemblyState(Enum):
    IDLE = "idle"
    OUTPUT_PREPARED = "output_prepared"
    LINKED = "linked"
    RESOURCES_OVERLAID = "resources_overlaid"
    PACKAGED = "packaged"
    FAILED = "failed"


def image_directory(output_root: Path, classifier: Optional[str]) -> Path:
    """Per-classifier image directory.

    Returns:
        <output_root>/classifiers/<classifier>, or <output_root>/default
    """
    if classifier:
        return Path(output_root) / "classifiers" / classifier
    return Path(output_root) / "default"


class ImageAssembler:
    """Prepares, links, overlays and packages one runtime image."""

    def __init__(
        self,
        output_root: Path,
        classifier: Optional[str] = None,
        resource_copier: Optional[ResourceCopier] = None,
        archive_creator: Optional[ArchiveCreator] = None,
    ):
        """Initialize assembler.

        Args:
            output_root: Root of all image directories
            classifier: Optional image classifier
            resource_copier: Copier for additional resources
            archive_creator: Zip writer
        """
        self.classifier = classifier or None
        self.output_dir = image_directory(output_root, self.classifier)
        self.resource_copier = resource_copier or ResourceCopier()
        self.archive_creator = archive_creator or ArchiveCreator()
        self.state = AssemblyState.IDLE
        self.execution_result: Optional[ExecutionResult] = None
        self.archive: Optional[Path] = None

    def _expect(self, state: AssemblyState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Image assembly is in state {self.state.value}, expected {state.value}"
            )

    def prepare_output(self) -> Path:
        """Delete a previous image directory; jlink refuses existing output."""
        self._expect(AssemblyState.IDLE)
        if self.output_dir.exists():
            logger.debug(f"Deleting existing {self.output_dir.absolute()}")
            try:
                shutil.rmtree(self.output_dir)
            except OSError as e:
                self.state = AssemblyState.FAILED
                raise PackagingError(
                    f"Failure during deletion of {self.output_dir.absolute()} occurred: {e}"
                ) from e
        self.output_dir.parent.mkdir(parents=True, exist_ok=True)
        self.state = AssemblyState.OUTPUT_PREPARED
        return self.output_dir

    def link(self, executor: LinkExecutor, args: Sequence[str]) -> ExecutionResult:
        """Run the linker, which creates the image directory."""
        self._expect(AssemblyState.OUTPUT_PREPARED)
        try:
            self.execution_result = executor.run(args)
        except RtImageError:
            self.state = AssemblyState.FAILED
            raise
        self.state = AssemblyState.LINKED
        return self.execution_result

    def overlay_resources(self, specs: Iterable[ResourceSpec]) -> None:
        """Copy additional resources into the image directory."""
        self._expect(AssemblyState.LINKED)
        specs = list(specs)
        try:
            if specs:
                self.resource_copier.copy(specs, self.output_dir)
        except RtImageError as e:
            self.state = AssemblyState.FAILED
            logger.error(f"Unable to copy the additional resources: {e}")
            raise
        self.state = AssemblyState.RESOURCES_OVERLAID

    def package(self, basedir: Path, final_name: str, output_timestamp: Optional[str]) -> Path:
        """Zip the image directory to <basedir>/<final_name>[-<classifier>].zip."""
        self._expect(AssemblyState.RESOURCES_OVERLAID)
        try:
            timestamp = parse_output_timestamp(output_timestamp)
            archive = get_archive_file(basedir, final_name, self.classifier)
        except ValueError as e:
            self.state = AssemblyState.FAILED
            raise PackagingError(str(e)) from e
        except RtImageError:
            self.state = AssemblyState.FAILED
            raise

        try:
            self.archive = self.archive_creator.create_archive(self.output_dir, archive, timestamp)
        except RtImageError:
            self.state = AssemblyState.FAILED
            raise
        self.state = AssemblyState.PACKAGED
        logger.info(f"Building zip: {self.archive}")
        return self.archive

    def assemble(
        self,
        executor: LinkExecutor,
        args: Sequence[str],
        resources: Iterable[ResourceSpec],
        basedir: Path,
        final_name: str,
        output_timestamp: Optional[str] = None,
    ) -> Path:
        """Run every stage in order.

        Returns:
            Path to the produced archive
        """
        self.prepare_output()
        self.link(executor, args)
        self.overlay_resources(resources)
        return self.package(basedir, final_name, output_timestamp)
