#!/usr/bin/env python3
"""
Unified entry point for all Big Monte interfaces.

Usage:
    big-monte                                   # Default: terminal (Textual)
    big-monte --ui web                          # Browser (Flask)
    big-monte --ui tui --players Ann Bob        # Pass-and-play in the terminal
    big-monte --ui web --port 8080              # Web on custom port

Individual entry points (tui.py, web.py) still work independently.
"""
import argparse
import sys


def main():
    # Pre-parse just the --ui flag, pass everything else through
    parser = argparse.ArgumentParser(
        description="Big Monte — dice poker in the terminal or browser",
        add_help=False,
    )
    parser.add_argument("--ui", choices=["tui", "web"], default="tui",
                        help="Interface: tui (terminal, default) or web (browser)")
    args, remaining = parser.parse_known_args()

    if args.ui == "tui":
        from tui import main as run_tui
        run_tui(remaining)

    elif args.ui == "web":
        sys.argv = [sys.argv[0]] + remaining
        from web import main as run_web
        run_web()


if __name__ == "__main__":
    main()
