#!/usr/bin/env python3
"""Android Store - Module entry point."""
import sys

from android_store.cli import main

if __name__ == "__main__":
    sys.exit(main())
