#!/usr/bin/env python3
"""
Main entry point for the vehicle-replay package.
Launches the GUI application (or the headless replay) when run as a module.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
