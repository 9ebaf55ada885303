"""Module entrypoint for running fast-tts as ``python -m fasttts``."""

from __future__ import annotations

from fasttts.cli import main


if __name__ == "__main__":
    main()
