"""kiln package entrypoint."""

from kiln.cli.app import main as _cli_main


def main() -> None:
    """Run the kiln CLI."""
    raise SystemExit(_cli_main())
