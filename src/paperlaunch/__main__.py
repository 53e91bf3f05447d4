"""Console entrypoint for the paperlaunch command.

``python -m paperlaunch`` and the installed ``paperlaunch`` console script
both run :func:`paperlaunch.cli.main`.
"""

from __future__ import annotations

import sys

from paperlaunch.cli import main as cli_main


def main() -> None:
    """Application entrypoint (delegates to :func:`paperlaunch.cli.main`)."""
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
