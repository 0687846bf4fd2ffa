"""Dev entry point for the `blackfire` CLI without an editable install.

    python -m main apps
    python -m main build start my-app --title "nightly"

The packages live under `src/`, so they are added to `sys.path` first.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
