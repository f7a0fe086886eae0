"""
Package entry point.

Allows running the application via:

    python -m classportal

This simply forwards execution to classportal.cli.main().
"""

from classportal.cli import main

if __name__ == "__main__":
    main()
