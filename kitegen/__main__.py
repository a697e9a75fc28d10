# File: kitegen/__main__.py
"""
KiteGen - Module entry point.

Allows running the generator directly via::

    python -m kitegen --schema schema.yaml --output ./my-app
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from kitegen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
