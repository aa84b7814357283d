"""Additional Resource Overlay.

This module copies extra resource sets (launch scripts, configuration files,
licenses) into the linked image directory, preserving relative paths.

Design:
    - Includes are glob patterns relative to the resource directory
    - Excludes are fnmatch patterns checked against the relative path
    - Filtered resources get ${key} placeholders replaced from project values;
      unknown placeholders are left untouched
"""

import fnmatch
import logging
import re
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from ..config.link_config import ResourceSpec
from ..errors import ResourceOverlayError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


class ResourceCopier:
    """Copies resource sets into a destination directory."""

    def __init__(self, properties: Optional[Mapping[str, str]] = None, encoding: str = "utf-8"):
        """Initialize resource copier.

        Args:
            properties: Values for ${key} placeholders in filtered resources
            encoding: Encoding of filtered text resources
        """
        self.properties: Dict[str, str] = dict(properties or {})
        self.encoding = encoding

    def copy(self, specs: Iterable[ResourceSpec], dest_dir: Path) -> List[Path]:
        """Copy every resource set into dest_dir.

        Args:
            specs: Resource sets to copy, in order (later sets overwrite earlier)
            dest_dir: Image directory

        Returns:
            Destination paths of all copied files

        Raises:
            ResourceOverlayError: If a resource directory is missing or a copy fails
        """
        copied: List[Path] = []
        for spec in specs:
            copied.extend(self._copy_spec(spec, Path(dest_dir)))
        return copied

    def _copy_spec(self, spec: ResourceSpec, dest_dir: Path) -> List[Path]:
        source_dir = Path(spec.directory)
        if not source_dir.is_dir():
            raise ResourceOverlayError(f"Resource directory not found: {source_dir}")

        target_root = dest_dir / spec.target_path if spec.target_path else dest_dir
        copied: List[Path] = []

        for source in self._select_files(spec):
            relative = source.relative_to(source_dir)
            target = target_root / relative
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                if spec.filtering:
                    self._filter_file(source, target)
                else:
                    shutil.copy2(source, target)
            except (OSError, UnicodeDecodeError) as e:
                raise ResourceOverlayError(
                    f"Unable to copy the additional resource {source}: {e}"
                ) from e
            copied.append(target)

        logger.debug(f"Copied {len(copied)} resources from {source_dir} to {target_root}")
        return copied

    @staticmethod
    def _select_files(spec: ResourceSpec) -> List[Path]:
        source_dir = Path(spec.directory)
        selected = set()
        for pattern in spec.includes:
            for candidate in source_dir.glob(pattern):
                if candidate.is_file():
                    selected.add(candidate)

        def excluded(path: Path) -> bool:
            relative = path.relative_to(source_dir).as_posix()
            return any(fnmatch.fnmatch(relative, pattern) for pattern in spec.excludes)

        return sorted(p for p in selected if not excluded(p))

    def _filter_file(self, source: Path, target: Path) -> None:
        text = source.read_text(encoding=self.encoding)

        def replace(match: re.Match) -> str:
            return self.properties.get(match.group(1), match.group(0))

        target.write_text(_PLACEHOLDER.sub(replace, text), encoding=self.encoding)
        shutil.copymode(source, target)
