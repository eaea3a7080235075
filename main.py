"""Entry point for running the scan host from a source checkout."""

import sys

from lanscan_host.cli import main


if __name__ == "__main__":
    sys.exit(main())
