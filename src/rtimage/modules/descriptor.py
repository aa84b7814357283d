"""Module descriptor inspection.

This module decides, for a single file on the module path, which module it
provides and whether that module is explicit (it carries a compiled
module-info.class) or automatic (a plain jar given a synthesized name).

Supported inputs:
    - Jar files, including multi-release jars
      (META-INF/versions/<N>/module-info.class)
    - JMOD files (classes/module-info.class behind a 4-byte header)
    - Exploded class directories (target/classes)

Anything else, a missing file or an unreadable archive resolves to None.
"""

import logging
import re
import struct
import zipfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MODULE_INFO = "module-info.class"
MANIFEST = "META-INF/MANIFEST.MF"
AUTOMATIC_MODULE_NAME = "Automatic-Module-Name"


class ModuleKind(Enum):
    """How a module obtained its name."""

    EXPLICIT = "explicit"
    AUTOMATIC = "automatic"


@dataclass(frozen=True)
class ModuleDescriptor:
    """Module metadata of one module path element."""

    name: str
    kind: ModuleKind
    requires: Tuple[str, ...] = field(default=())

    @property
    def is_automatic(self) -> bool:
        return self.kind is ModuleKind.AUTOMATIC


@dataclass(frozen=True)
class ModuleArtifact:
    """A module path element together with its resolved descriptor."""

    name: str
    location: Path
    kind: ModuleKind


class ClassFileError(Exception):
    """Raised when a module-info.class cannot be parsed."""

    pass


# Constant pool tag -> payload size for fixed-size entries
_FIXED_CP_SIZES = {
    3: 4,   # Integer
    4: 4,   # Float
    5: 8,   # Long
    6: 8,   # Double
    7: 2,   # Class
    8: 2,   # String
    9: 4,   # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}
_CP_UTF8 = 1
_CP_MODULE = 19


class _Reader:
    """Big-endian cursor over class file bytes."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.data):
            raise ClassFileError("Unexpected end of class file")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def u2(self) -> int:
        return struct.unpack(">H", self.take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self.take(4))[0]


def parse_module_info(data: bytes) -> ModuleDescriptor:
    """Parse a compiled module-info.class.

    Args:
        data: Raw class file bytes

    Returns:
        Explicit ModuleDescriptor with the module name and required modules

    Raises:
        ClassFileError: If the bytes are not a module-info class file
    """
    reader = _Reader(data)
    if reader.u4() != 0xCAFEBABE:
        raise ClassFileError("Bad class file magic")
    reader.u2()  # minor
    reader.u2()  # major

    pool: Dict[int, Tuple[int, object]] = {}
    count = reader.u2()
    index = 1
    while index < count:
        tag = reader.take(1)[0]
        if tag == _CP_UTF8:
            length = reader.u2()
            pool[index] = (tag, reader.take(length).decode("utf-8", errors="replace"))
        elif tag in _FIXED_CP_SIZES:
            payload = reader.take(_FIXED_CP_SIZES[tag])
            pool[index] = (tag, struct.unpack(">H", payload[:2])[0])
            if tag in (5, 6):
                index += 1
        else:
            raise ClassFileError(f"Unknown constant pool tag {tag}")
        index += 1

    def utf8(i: int) -> str:
        entry = pool.get(i)
        if entry is None or entry[0] != _CP_UTF8:
            raise ClassFileError(f"Constant #{i} is not a Utf8 entry")
        return str(entry[1])

    def module_name(i: int) -> str:
        entry = pool.get(i)
        if entry is None or entry[0] != _CP_MODULE:
            raise ClassFileError(f"Constant #{i} is not a Module entry")
        return utf8(int(entry[1]))  # type: ignore[arg-type]

    reader.u2()  # access_flags
    reader.u2()  # this_class
    reader.u2()  # super_class
    reader.take(2 * reader.u2())  # interfaces

    for _ in range(2):  # fields, methods
        for _ in range(reader.u2()):
            reader.take(6)
            for _ in range(reader.u2()):
                reader.u2()
                reader.take(reader.u4())

    for _ in range(reader.u2()):
        attr_name = utf8(reader.u2())
        attr_len = reader.u4()
        body = reader.take(attr_len)
        if attr_name != "Module":
            continue

        attr = _Reader(body)
        name = module_name(attr.u2())
        attr.u2()  # module_flags
        attr.u2()  # module_version_index
        requires: List[str] = []
        for _ in range(attr.u2()):
            requires.append(module_name(attr.u2()))
            attr.u2()  # requires_flags
            attr.u2()  # requires_version_index
        return ModuleDescriptor(name, ModuleKind.EXPLICIT, tuple(requires))

    raise ClassFileError("No Module attribute in class file")


def parse_manifest(text: str) -> Dict[str, str]:
    """Parse the main section of a jar manifest.

    Continuation lines start with a single space.
    """
    attributes: Dict[str, str] = {}
    last_key: Optional[str] = None
    for raw in text.splitlines():
        if not raw:
            break  # end of main section
        if raw.startswith(" ") and last_key is not None:
            attributes[last_key] += raw[1:]
            continue
        key, sep, value = raw.partition(":")
        if not sep:
            continue
        last_key = key.strip()
        attributes[last_key] = value.strip()
    return attributes


def derive_automatic_name(filename: str) -> Optional[str]:
    """Derive an automatic module name from a jar file name.

    Examples:
        >>> derive_automatic_name("commons-lang3-3.12.0.jar")
        'commons.lang3'
        >>> derive_automatic_name("foo_bar.jar")
        'foo.bar'
    """
    name = filename[:-4] if filename.lower().endswith(".jar") else filename

    version = re.search(r"-(\d+(\.|$))", name)
    if version:
        name = name[: version.start()]

    name = re.sub(r"[^A-Za-z0-9]", ".", name)
    name = re.sub(r"\.{2,}", ".", name).strip(".")
    return name or None


class ModuleDescriptorResolver:
    """Resolves the module descriptor of a module path element."""

    def resolve(self, path: Path) -> Optional[ModuleDescriptor]:
        """Resolve the descriptor for one file or directory.

        Args:
            path: Jar, jmod or exploded class directory

        Returns:
            ModuleDescriptor, or None when the element provides no module
        """
        path = Path(path)
        if path.is_dir():
            return self._resolve_directory(path)
        if not path.is_file():
            logger.debug(f"Module path element does not exist: {path}")
            return None

        suffix = path.suffix.lower()
        if suffix == ".jmod":
            return self._resolve_archive(path, [f"classes/{MODULE_INFO}"], automatic=False)
        if suffix == ".jar":
            return self._resolve_archive(path, [MODULE_INFO], automatic=True)
        return None

    def _resolve_directory(self, directory: Path) -> Optional[ModuleDescriptor]:
        module_info = directory / MODULE_INFO
        if module_info.is_file():
            return self._parse(module_info.read_bytes(), module_info)

        manifest = directory / MANIFEST
        if manifest.is_file():
            attributes = parse_manifest(manifest.read_text(encoding="utf-8", errors="replace"))
            name = attributes.get(AUTOMATIC_MODULE_NAME)
            if name:
                return ModuleDescriptor(name, ModuleKind.AUTOMATIC)
        return None

    def _resolve_archive(
        self, archive: Path, candidates: List[str], automatic: bool
    ) -> Optional[ModuleDescriptor]:
        try:
            with zipfile.ZipFile(archive) as zf:
                names = set(zf.namelist())
                entry = next((c for c in candidates if c in names), None)
                if entry is None:
                    entry = self._versioned_module_info(names)
                if entry is not None:
                    return self._parse(zf.read(entry), archive)
                if not automatic:
                    return None

                if MANIFEST in names:
                    attributes = parse_manifest(
                        zf.read(MANIFEST).decode("utf-8", errors="replace")
                    )
                    name = attributes.get(AUTOMATIC_MODULE_NAME)
                    if name:
                        return ModuleDescriptor(name, ModuleKind.AUTOMATIC)
        except (zipfile.BadZipFile, OSError) as e:
            logger.debug(f"Unable to read {archive}: {e}")
            return None

        name = derive_automatic_name(archive.name)
        if name is None:
            return None
        return ModuleDescriptor(name, ModuleKind.AUTOMATIC)

    @staticmethod
    def _versioned_module_info(names) -> Optional[str]:
        versioned = []
        for name in names:
            match = re.match(r"^META-INF/versions/(\d+)/module-info\.class$", name)
            if match:
                versioned.append((int(match.group(1)), name))
        if not versioned:
            return None
        return max(versioned)[1]

    @staticmethod
    def _parse(data: bytes, source: Path) -> Optional[ModuleDescriptor]:
        try:
            return parse_module_info(data)
        except ClassFileError as e:
            logger.debug(f"Invalid module-info.class in {source}: {e}")
            return None
