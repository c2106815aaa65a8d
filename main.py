#!/usr/bin/env python3
"""
Main entry point for the CoinAIRank listing service.

Equivalent to the ``coinairank`` console script.
"""

import sys

from coinairank.cli import main

if __name__ == "__main__":
    sys.exit(main())
