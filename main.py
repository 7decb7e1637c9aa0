#!/usr/bin/env python3
"""
SPINOPT Entry Point
===================

Evolutionary tuning of a multi-factor wheel prediction strategy against
recorded spins.

Usage:
    python main.py optimize --history data/history.csv --output outputs/best.json
    python main.py evaluate --history data/history.csv --params outputs/best.json
    python main.py recommend --history data/history.csv --num1 12 --num2 7
    python main.py --help
"""
import sys

from spinopt.cli import main

if __name__ == "__main__":
    sys.exit(main())
