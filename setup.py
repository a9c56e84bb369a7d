#!/usr/bin/env python3
"""vpsdeploy - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line for line in f.read().splitlines() if line and not line.startswith("#")]

setup(
    name="vpsdeploy",
    version="0.1.0",
    description="Build, deploy and monitor a binary on a VPS over SSH with systemd",
    author="vpsdeploy contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "vpsdeploy=vpsdeploy.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
