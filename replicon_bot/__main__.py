"""
Main entry point for running the package as a module.

Usage:
    python -m replicon_bot dry-run --rows data/march.csv --mappings data/mappings.json
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
