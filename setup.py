#!/usr/bin/env python3
"""Setup script for mindcanvas."""

from setuptools import setup, find_packages


setup(
    name="mindcanvas",
    version="1.0.0",
    description="Document engine for a mind-map editor: nodes, connections, undo and a map catalog",
    author="mindcanvas project",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "PyGObject>=3.46.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mindcanvas=mindcanvas.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business",
    ],
)
