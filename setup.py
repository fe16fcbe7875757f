import os
import re

import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    with open(os.path.join(here, *parts), "r") as fp:
        return fp.read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


setuptools.setup(
    name="restack",
    version=find_version("restack", "__init__.py"),
    description="Rebase stacked pull requests onto their current base branches",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=("restack", "restack.*")),
    include_package_data=True,
    package_data={
        "restack": ["py.typed"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=[
        "click",
        "requests",
        "typing_extensions>=3.7.2",  # need Literal
    ],
    extras_require={
        "test": [
            "pytest",
            "expecttest",
        ],
    },
    entry_points={
        "console_scripts": [
            "restack = restack.cli:main",
        ],
    },
)
