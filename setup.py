"""Setup script for mhtrack."""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README
this_directory = Path(__file__).parent
readme = this_directory / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="mhtrack",
    version="1.0.0",
    author="mhtrack developers",
    description="Multi-hypotheses tracking as an integer linear program",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["mhtrack", "mhtrack.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pyyaml>=6.0",
        "tqdm>=4.65.0",
        "matplotlib>=3.7.0",
        "seaborn>=0.13.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-cov>=4.0.0",
            "black>=23.3.0",
            "flake8>=6.0.0",
            "isort>=5.12.0",
        ],
        "test": [
            "pytest>=7.3.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mhtrack-track=mhtrack.cli:track_main",
            "mhtrack-learn=mhtrack.cli:learn_main",
        ],
    },
    include_package_data=True,
    package_data={
        "mhtrack": ["config/*.yaml"],
    },
)
