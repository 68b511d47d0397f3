#!/usr/bin/env python3
"""Main entry point for facematch.

Simplified entry point that delegates to the CLI module.

Usage:
    python main.py extract face.json          # Print a feature record
    python main.py compare a.json b.json      # Score two feature records
    python main.py list                       # List enrolled identities
    python main.py api                        # Start the HTTP API

Or use the CLI directly:
    python -m facematch list
"""

import sys
from pathlib import Path


def main():
    """Main entry point - delegates to CLI."""
    # If no arguments, show help
    if len(sys.argv) == 1:
        print(__doc__)
        print("Run 'python main.py --help' for more options")
        sys.exit(0)

    sys.path.insert(0, str(Path(__file__).parent / "src"))
    from facematch.cli import main as cli_main
    cli_main()


if __name__ == "__main__":
    main()
