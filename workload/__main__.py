"""
Package entry point.

Allows running the application via:

    python -m workload

This simply forwards execution to workload.cli.main().
"""

from workload.cli import main

if __name__ == "__main__":
    main()
