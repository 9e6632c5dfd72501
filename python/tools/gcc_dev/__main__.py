#!/usr/bin/env python3
"""
Entry point for direct module execution.
"""

from .cli import main

if __name__ == "__main__":
    main()
