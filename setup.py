"""
Setup script for mastery-path.

Mastery Path is the adaptive scheduler behind a gamified times-table
trainer. It serves three roles:

1. Scheduler - Decides which facts a learner drills next and in which format
2. Ledger - Tracks per-table mastery and per-fact streaks, advances stages
3. Terminal companion - Plans sessions and records attempts from the CLI

The 'mastery-path' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="mastery-path",
    version="1.0.0",
    description="Adaptive multiplication-fact scheduler with a terminal companion",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Mastery Path",
    packages=find_packages(include=["mastery_path", "mastery_path.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mastery-path=mastery_path.delivery.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning multiplication times-tables adaptive scheduler education",
)
