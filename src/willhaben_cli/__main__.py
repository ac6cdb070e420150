"""
willhaben-cli — Entry Point

Usage:
    willhaben                      # Interactive mode
    willhaben -q "fahrrad"         # Start with a search
    willhaben --width 80           # ASCII art width for this run
    willhaben --contrast rotate    # ASCII art contrast for this run
    willhaben --verbose            # Also log to stderr
"""

import argparse
import asyncio
import sys

from willhaben_cli import __version__
from willhaben_cli.config import VALID_ASCII_CONTRASTS, VALID_ASCII_WIDTHS, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="willhaben",
        description="willhaben-cli — browse willhaben.at from your terminal",
        epilog="Examples:\n"
               "  willhaben                     Interactive mode\n"
               "  willhaben -q rennrad          Start with a search\n"
               "  willhaben --width 80          Narrow ASCII art\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"willhaben-cli {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--query", "-q", metavar="TEXT", help="Run this search on startup")
    parser.add_argument(
        "--width",
        choices=[str(w) for w in VALID_ASCII_WIDTHS],
        help="ASCII art width for this run (not saved)",
    )
    parser.add_argument(
        "--contrast",
        choices=list(VALID_ASCII_CONTRASTS),
        help="ASCII art contrast for this run (not saved)",
    )
    return parser


async def async_main(argv: list[str] | None = None):
    """Async main entry point."""
    args = build_parser().parse_args(argv)

    from willhaben_cli.logging_config import setup_logging
    logger = setup_logging(verbose=args.verbose)
    logger.info("willhaben-cli starting", extra={"query": args.query})

    config = load_config()
    # Flags override the loaded config for this run only
    if args.width:
        config.data["ascii_width"] = args.width
    if args.contrast:
        config.data["ascii_contrast"] = args.contrast

    try:
        from willhaben_cli.cli import WillhabenCLI

        cli = WillhabenCLI(config=config)
        await cli.run(initial_query=args.query)

    except KeyboardInterrupt:
        logger.info("User interrupted with Ctrl-C")
        print("\nServus!")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"\n[!] Fatal error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


def main():
    """Sync entry point for console_scripts (pyproject.toml)."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\n\nInterrupted. Servus!")
        sys.exit(0)


if __name__ == "__main__":
    main()
