#!/usr/bin/env python3
"""
TeamSync - Main entry point for python -m teamsync
"""

import sys

from teamsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
