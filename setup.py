"""Setup script for the git_driver package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file for long description
readme_path = Path(__file__).parent / "README.md"
try:
    with open(readme_path, encoding="utf-8") as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = (
        "Runs git as a subprocess under timeout and cancellation control and "
        "decodes its output into typed records"
    )

setup(
    name="git-driver",
    version="1.0.0",
    description="Git subprocess driver with typed decoders for status, log, refs, diffs, tags and stashes",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "python"},
    packages=find_packages(where="python", include=["git_driver", "git_driver.*"]),
    python_requires=">=3.10",
    install_requires=[
        "loguru>=0.6.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.20.0",
            "pytest-mock>=3.10.0",
            "mypy>=1.0.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "flake8>=5.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.20.0",
            "pytest-mock>=3.10.0",
            "pytest-cov>=4.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Version Control :: Git",
        "Typing :: Typed",
    ],
    keywords="git subprocess porcelain diff parser",
    entry_points={
        "console_scripts": [
            "git-driver=git_driver.__main__:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
