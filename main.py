#!/usr/bin/env python3
"""
actlock - Main Entry Point
"""

import sys
from actlock.cli import main

if __name__ == "__main__":
    sys.exit(main())
