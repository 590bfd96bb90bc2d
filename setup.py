#!/usr/bin/env python3
"""
Setup script for rockblockpy.
"""

from setuptools import setup, find_packages

setup(
    name="rockblockpy",
    version="0.1.0",
    description="Python library for Iridium short burst data modems (RockBLOCK 9602/9603) via AT commands",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pyserial>=3.5",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-timeout>=2.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rockblock-cli=rockblockpy.cli:main",
        ],
    },
    keywords=["iridium", "rockblock", "sbd", "satellite", "modem", "at-commands", "iot"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Communications",
        "Topic :: System :: Hardware :: Hardware Drivers",
        "Operating System :: POSIX :: Linux",
        "License :: OSI Approved :: MIT License",
    ],
)
