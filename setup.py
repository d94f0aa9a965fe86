# -*- coding: utf-8 -*-
import setuptools
import pathlib
import site
import sys

# odd bug with develop (editable) installs, see: https://github.com/pypa/pip/issues/7953
site.ENABLE_USER_SITE = "--user" in sys.argv[1:]

required = [
    "numpy",
    "mashumaro",
    "loguru",
    "Pillow",
    "rich>=13.0.0",
    "click>=8.0.0",
]

test_required = [
    "pytest",
    "pytest_asyncio>=0.24.0",
    "doit",
]

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

# Read version
version = {}
with open(here / "src" / "benchlink" / "_version.py", "r") as f:
    exec(f.read(), version)

if __name__ == "__main__":
    setuptools.setup(
        name="benchlink",
        version=version["__version__"],
        description="Raw-socket (LXI) SCPI transport for bench instruments.",
        long_description=long_description,
        long_description_content_type="text/markdown",
        keywords=[
            "SCPI",
            "LXI",
            "IEEE-488.2",
            "oscilloscope",
            "test equipment",
        ],
        classifiers=[
            "License :: OSI Approved :: MIT License",
            "Development Status :: 3 - Alpha",
            "Framework :: AsyncIO",
        ],
        license="MIT",
        package_dir={"": "src"},
        packages=setuptools.find_packages(
            where="src",
            exclude=["*.test", "*.test.*", "test.*", "test", "test_*"],
        ),
        entry_points={
            "console_scripts": [
                "benchlink=benchlink.cli:cli",
            ],
        },
        install_requires=required,
        extras_require={"test": test_required},
        python_requires=">= 3.11",
        setup_requires=["wheel"],  # force install of wheel first
    )
