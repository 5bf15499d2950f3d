"""
CLI entry point for rpi_usb.

Allows running with: python -m rpi_usb
"""

import sys


def main():
    from .main import main as cli_main

    sys.exit(cli_main())


if __name__ == "__main__":
    main()
