"""Allow running as ``python -m facematch``."""

from .cli import main

if __name__ == "__main__":
    main()
