#!/usr/bin/env python3
"""
Setup script for the NevealDJ audio engine
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Read requirements
requirements_path = Path(__file__).parent / "requirements.txt"
if requirements_path.exists():
    requirements = requirements_path.read_text().splitlines()
    requirements = [req.strip() for req in requirements if req.strip() and not req.startswith('#')]
else:
    requirements = [
        'numpy>=1.20.0',
        'scipy>=1.7.0',
        'librosa>=0.10.0',
        'soundfile>=0.11.0',
        'audioread>=3.0.0',
        'sounddevice>=0.4.6',
        'mutagen>=1.46.0',
    ]

setup(
    name="nevealdj-engine",
    version="0.3.0",
    description="Multi-deck DJ audio engine: tempo estimation, tag-backed BPM cache and deck playback",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="NevealDJ Team",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=requirements,
    extras_require={
        'dev': ['pytest>=6.0', 'pytest-cov', 'flake8', 'black'],
    },
    entry_points={
        'console_scripts': [
            'nevealdj=nevealdj.cli.main:main',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Multimedia :: Sound/Audio :: Analysis",
        "Topic :: Multimedia :: Sound/Audio :: Players",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    keywords="dj audio bpm tempo spectral-flux autocorrelation decks",
    include_package_data=True,
    zip_safe=False,
)
