"""Module entrypoint for `python -m nexalink`."""

from __future__ import annotations

from nexalink.cli import main


if __name__ == "__main__":
    main()
