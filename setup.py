"""
Setup configuration for podunit
"""
from setuptools import setup, find_packages

setup(
    name="podunit",
    version="0.1.0",
    description="Generate systemd units for Podman containers",
    packages=find_packages(include=["podunit", "podunit.*"]),
    python_requires=">=3.9",
    install_requires=[
        # Template rendering for unit files
        "jinja2>=3.1.0,<4.0.0",
        # Configuration and validation
        "pydantic>=2.5.0,<3.0.0",
        "pydantic-settings>=2.0.0,<3.0.0",
        # Metadata files (YAML and JSON)
        "PyYAML>=6.0,<7.0",
        # Logging and structured logging
        "structlog>=25.2.0,<26.0.0",
        # Command line interface
        "typer>=0.9.0",
        "typing_extensions>=4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0,<9.0.0",
            "pytest-cov>=4.1.0,<5.0.0",
            "pytest-mock>=3.12.0,<4.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "podunit=podunit.main:app",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Systems Administration",
    ],
)
