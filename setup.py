#!/usr/bin/env python3
"""Setup script for verdict - verification orchestration for agent-built features."""

import subprocess
from pathlib import Path
from setuptools import find_packages, setup
from setuptools.command.build_py import build_py
from setuptools.command.install import install


def get_git_commit():
    """Get the current git commit hash."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            cwd=Path(__file__).parent
        )
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        return "unknown"


def update_version_file_with_git_hash():
    """Stamp _version.py with the commit the package is built from."""
    version_file = Path(__file__).parent / "verdict" / "_version.py"
    if not version_file.exists():
        return

    git_commit = get_git_commit()
    if git_commit == "unknown":
        return

    lines = version_file.read_text(encoding="utf-8").split('\n')
    updated_lines = [
        f'VERDICT_GIT_COMMIT = "{git_commit}"' if line.startswith('VERDICT_GIT_COMMIT') else line
        for line in lines
    ]
    version_file.write_text('\n'.join(updated_lines), encoding="utf-8")
    print(f"Updated _version.py with git commit: {git_commit}")


class BuildPyCommand(build_py):
    """Custom build command to capture git hash."""

    def run(self):
        update_version_file_with_git_hash()
        super().run()


class InstallCommand(install):
    """Custom install command to capture git hash."""

    def run(self):
        update_version_file_with_git_hash()
        super().run()


# Avoid importing the package during setup to prevent dependency import errors
version_ns = {}
version_file = Path(__file__).parent / "verdict" / "_version.py"
if version_file.exists():
    exec(version_file.read_text(encoding="utf-8"), version_ns)
VERDICT_VERSION = version_ns.get("VERDICT_VERSION", "0.0.0")

readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="verdict-engine",
    version=VERDICT_VERSION,
    description="Verdict - verification orchestration for features built by coding agents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Verdict Team",
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        'dev': [
            'pytest>=7.0.0',
            'pytest-cov>=4.0.0',
            'black>=23.0.0',
            'mypy>=1.0.0',
            'pylint>=2.16.0',
        ],
    },
    packages=find_packages(
        exclude=["tests", "tests.*", "build", "build.*"]
    ),
    entry_points={
        "console_scripts": [
            "verdict=verdict.main:main",
        ],
    },
    cmdclass={
        'build_py': BuildPyCommand,
        'install': InstallCommand,
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Quality Assurance",
        "Topic :: Software Development :: Testing",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="ai agent verification acceptance-criteria tdd ci testing automation",
)
