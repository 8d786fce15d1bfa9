"""
Package entry point for python -m execution.

USAGE:
    python -m breathflow_tracker breathe box    # Guided session
    python -m breathflow_tracker report         # Print report
    python -m breathflow_tracker dashboard      # Launch stats API
"""

import sys

from breathflow_tracker.cli import main

if __name__ == "__main__":
    sys.exit(main())
