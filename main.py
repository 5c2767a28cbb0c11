#!/usr/bin/env python3
"""
ApiPosture - Go API authorization posture scanner
==================================================
Static discovery of Gin, Echo, Chi, Fiber and net/http routes with
authorization classification and security findings.

Usage: python main.py [scan] [OPTIONS] <path>
"""

import sys

from apiposture.cli import main

if __name__ == "__main__":
    sys.exit(main())
