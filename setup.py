#!/usr/bin/env python
"""
Setup script for the California local regression package.

This package fits global, regional, grid-neighbourhood and geographically
weighted regressions to California precipitation and 1990 house prices, and
interpolates station observations onto a grid.
"""
from setuptools import setup, find_packages

setup(
    name="california_gwr",
    version="1.0.0",
    description="Local regression and spatial interpolation for California datasets",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "numpy>=1.22.0",
        "pandas>=1.5.0",
        "matplotlib>=3.5.0",
        "statsmodels>=0.13.0",
        "scipy>=1.9.0",
        "geopandas>=0.12.0",
        "shapely>=2.0.0",
        "pyproj>=3.3.0",
        "libpysal>=4.7.0",
        "esda>=2.4.0",
        "mgwr>=2.1.2",
        "pykrige>=1.7.0",
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
        "typer>=0.9.0",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "california-gwr=california_gwr.cli.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
)
