"""Archive Creator.

This module packs a linked runtime image directory into a zip archive.

Design:
    - Entries are added in sorted order, directories before their contents
    - Entry names are relative to the image directory
    - With a fixed timestamp every entry gets the same modification time, so
      rebuilding identical inputs yields byte-identical archives
    - File permission bits are kept so launchers stay executable
"""

import logging
import os
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from tqdm import tqdm

from ..errors import PackagingError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = "zip"


def get_archive_file(
    basedir: Path, final_name: str, classifier: Optional[str], extension: str = ARCHIVE_EXTENSION
) -> Path:
    """Compute <basedir>/<final_name>[-<classifier>].<extension>.

    Raises:
        ValueError: If final_name or extension is empty
    """
    if basedir is None:
        raise ValueError("basedir is not allowed to be None")
    if not final_name:
        raise ValueError("final_name is not allowed to be empty.")
    if not extension:
        raise ValueError("extension is not allowed to be empty.")

    file_name = final_name
    if classifier:
        file_name += f"-{classifier}"
    return Path(basedir) / f"{file_name}.{extension}"


def _zip_date_time(instant: datetime) -> Tuple[int, int, int, int, int, int]:
    utc = instant.astimezone(timezone.utc)
    return (utc.year, utc.month, utc.day, utc.hour, utc.minute, utc.second)


class ArchiveCreator:
    """Creates zip archives from image directories."""

    def __init__(self, show_progress: bool = True):
        """Initialize archive creator.

        Args:
            show_progress: Whether to show a progress bar and log archive size
        """
        self.show_progress = show_progress

    def create_archive(
        self,
        source_dir: Path,
        archive_path: Path,
        timestamp: Optional[datetime] = None,
    ) -> Path:
        """Create a zip archive of a directory's contents.

        Args:
            source_dir: Directory whose contents are archived
            archive_path: Output .zip path
            timestamp: Fixed modification time for every entry, or None to
                keep the files' own times

        Returns:
            Path to the generated archive

        Raises:
            PackagingError: If the directory is missing or archiving fails
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise PackagingError(f"Image directory not found: {source_dir}")

        date_time = _zip_date_time(timestamp) if timestamp is not None else None

        try:
            entries = self._collect_entries(source_dir)
            archive_path.parent.mkdir(parents=True, exist_ok=True)

            progress_bar = None
            if self.show_progress and entries:
                progress_bar = tqdm(
                    total=sum(p.stat().st_size for p in entries if p.is_file()),
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=f"Packaging {archive_path.name}",
                )

            with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zf:
                for path in entries:
                    written = self._add(zf, path, source_dir, date_time)
                    if progress_bar:
                        progress_bar.update(written)

            if progress_bar:
                progress_bar.close()
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            logger.error(f"Failed to create archive {archive_path.name}: {e}")
            raise PackagingError(f"Failed to create archive {archive_path.name}: {e}") from e

        if self.show_progress:
            size = archive_path.stat().st_size
            logger.info(f"Created {archive_path.name}: {size:,} bytes ({size / 1024 / 1024:.2f} MB)")

        return archive_path

    @staticmethod
    def _collect_entries(source_dir: Path) -> List[Path]:
        """All paths below source_dir, sorted, each directory before its contents."""
        entries: List[Path] = []
        for root, dirs, files in os.walk(source_dir):
            dirs.sort()
            root_path = Path(root)
            entries.extend(root_path / name for name in dirs)
            entries.extend(root_path / name for name in sorted(files))
        return entries

    @staticmethod
    def _add(zf: zipfile.ZipFile, path: Path, source_dir: Path, date_time) -> int:
        arcname = path.relative_to(source_dir).as_posix()
        info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
        if date_time is not None:
            info.date_time = date_time

        if info.is_dir():
            zf.writestr(info, b"")
            return 0

        info.compress_type = zipfile.ZIP_DEFLATED
        with open(path, "rb") as f:
            data = f.read()
        zf.writestr(info, data)
        return len(data)
