"""
Entry point for running clustering as a module.

Usage:
    python3 -m text_clustering corpus.json [--seed 42]
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
