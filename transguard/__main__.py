"""Module entrypoint for running transguard as ``python -m transguard``."""

from __future__ import annotations

from transguard.cli import main


if __name__ == "__main__":
    main()
