# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for plugman plugin package manager
"""

from setuptools import setup, find_packages

setup(
    name="plugman",
    version="1.0.0",
    description="Plugin package manager: catalog aggregation, dependency resolution and installation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110.0",
        "httpx>=0.27.0",
        "json5>=0.9.0",
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
        "semantic_version>=2.10.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ]
    },
)
