#!/usr/bin/env python
"""
Setup script for the squares pool engine.

Installs the `squarespool` package and its dependencies.

Usage:
    pip install -e .
    pip install -e ".[test]"

To run the operator commands afterwards:
    python -m squarespool validate BOARD_ID
"""

from pathlib import Path

from setuptools import setup, find_packages


def read_requirements(filename):
    """Read requirement lines, skipping comments and blanks."""
    path = Path(__file__).parent / filename
    lines = path.read_text(encoding='utf-8').splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith('#')]


setup(
    name='squarespool',
    version='1.0.0',
    description='Random square assignment and winner scoring for tournament squares pools',
    packages=find_packages(include=['squarespool', 'squarespool.*']),
    python_requires='>=3.9',
    install_requires=read_requirements('requirements.txt'),
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'squarespool=squarespool.cli:main',
        ],
    },
)
