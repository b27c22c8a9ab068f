# pathsift/main.py
"""Main entry point for the pathsift CLI application."""

from pathsift.cli.interface import main_cli


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli(prog_name="pathsift")

if __name__ == '__main__':
    entrypoint()
