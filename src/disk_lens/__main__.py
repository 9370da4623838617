"""Entry point for ``python -m disk_lens``."""

from disk_lens.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Run the command-line interface."""
    cli()


if __name__ == "__main__":
    main()
