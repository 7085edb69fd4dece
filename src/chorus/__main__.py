"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: __main__.py.
"""

from .server import run

if __name__ == "__main__":
    run()
