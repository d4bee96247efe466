"""
PDTF Claims Engine Build Configuration

Usage:
    pip install -e .            # Library + API
    pip install -e .[test]      # Plus the test toolchain
"""

from setuptools import setup, find_packages

setup(
    name="pdtf-claims",
    version="0.1.0",
    description="Aggregates PDTF claims into transaction state with per-field provenance",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "loguru>=0.7",
        "fastapi>=0.100",
        "uvicorn>=0.23",
        "jsonschema>=4.18",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
            "httpx>=0.24",
        ],
    },
    python_requires=">=3.11",
)
