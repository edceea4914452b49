"""Console-script entry point for :mod:`sitebake`."""

from __future__ import annotations

from sitebake.cli import create_app


def main() -> None:
    """Execute the CLI application.

    Example:
        >>> from sitebake.__main__ import main
        >>> main()  # doctest: +SKIP
    """

    app = create_app()
    app(prog_name="sitebake")


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()


__all__ = ["main"]
