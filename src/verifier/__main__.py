"""
Entry point for running verifier as a module.

Allows running the engine via:
    python -m verifier run file-summary --files README.md
"""

import sys

from verifier.cli import main

if __name__ == "__main__":
    sys.exit(main())
