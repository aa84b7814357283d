"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/rtimage/rtimage"
KEYWORDS = "java jlink jdk runtime image modules jpms build packaging"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    with open(os.path.join(HERE, "src", "rtimage", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="rtimage",
        version=read_version(),
        description="Build custom Java runtime images with jlink",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages("src"),
        python_requires=">=3.10",
        install_requires=["psutil", "tqdm"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["rtimage=rtimage.cli:main"]},
        include_package_data=True)
