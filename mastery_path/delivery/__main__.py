"""
Entry point for running Mastery Path as a module.

Usage:
    python -m mastery_path.delivery plan alice
    python -m mastery_path.delivery progress alice
    python -m mastery_path.delivery --help
"""
from .cli import main

if __name__ == "__main__":
    main()
