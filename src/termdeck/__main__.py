"""CLI entry point for termdeck."""

import sys


def main() -> int:
    """Main entry point for the termdeck CLI."""
    from termdeck.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
