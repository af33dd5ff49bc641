#!/usr/bin/env python3
"""
Main entry point for the onionctl CLI.

Delegates to the UI layer in onionctl.ui.cli to keep the console script
mapping stable.
"""

from onionctl.ui.cli import run as onionctl


if __name__ == "__main__":
    onionctl()
