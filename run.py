"""
PortWatch Entry Point
Runs one snapshot / diff cycle from a source checkout.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from portwatch.cli import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nRun interrupted by user.", file=sys.stderr)
        sys.exit(130)
