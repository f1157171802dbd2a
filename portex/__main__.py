"""
Portex Module Entry Point
==========================

Allows running the Portex CLI via: python -m portex
"""

from portex.cli import main

if __name__ == "__main__":
    main()
