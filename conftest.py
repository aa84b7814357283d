"""
Pytest configuration for the rtimage test suite.

This configuration enables the --full flag to run integration tests and
provides fixtures that fabricate module-info.class files and module jars.
"""

import struct
import zipfile

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    config.addinivalue_line("markers", "integration: runs the linker driver end to end")
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            config.option.markexpr = ""


def build_module_info(name, requires=("java.base",)):
    """Assemble a minimal module-info.class declaring `name` and `requires`."""
    pool = []

    def utf8(text):
        data = text.encode("utf-8")
        pool.append(b"\x01" + struct.pack(">H", len(data)) + data)
        return len(pool)

    def module(text):
        index = utf8(text)
        pool.append(b"\x13" + struct.pack(">H", index))
        return len(pool)

    this_name = utf8("module-info")
    pool.append(b"\x07" + struct.pack(">H", this_name))
    this_class = len(pool)
    attr_name = utf8("Module")
    module_index = module(name)
    require_indexes = [module(r) for r in requires]

    body = struct.pack(">HHH", module_index, 0, 0)
    body += struct.pack(">H", len(require_indexes))
    for index in require_indexes:
        body += struct.pack(">HHH", index, 0, 0)
    body += struct.pack(">HHHH", 0, 0, 0, 0)  # exports, opens, uses, provides

    data = struct.pack(">IHH", 0xCAFEBABE, 0, 53)
    data += struct.pack(">H", len(pool) + 1) + b"".join(pool)
    data += struct.pack(">HHHH", 0x8000, this_class, 0, 0)
    data += struct.pack(">HH", 0, 0)  # fields, methods
    data += struct.pack(">H", 1)
    data += struct.pack(">HI", attr_name, len(body)) + body
    return data


@pytest.fixture
def module_info():
    """Factory for module-info.class bytes."""
    return build_module_info


@pytest.fixture
def make_jar(tmp_path):
    """Factory writing a jar with an optional module-info and manifest."""

    def _make_jar(file_name, module_name=None, automatic_name=None, directory=None):
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        jar = target_dir / file_name
        with zipfile.ZipFile(jar, "w") as zf:
            manifest = "Manifest-Version: 1.0\n"
            if automatic_name:
                manifest += f"Automatic-Module-Name: {automatic_name}\n"
            zf.writestr("META-INF/MANIFEST.MF", manifest + "\n")
            if module_name:
                zf.writestr("module-info.class", build_module_info(module_name))
            zf.writestr("com/example/Placeholder.class", b"\xca\xfe\xba\xbe")
        return jar

    return _make_jar
