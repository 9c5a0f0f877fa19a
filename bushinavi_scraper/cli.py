#!/usr/bin/env python3
"""
Bushi Navi Scraper CLI
Collects last week's top-ranked decks and delivers them as JSON
"""

import argparse
import asyncio
import os
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from bushinavi_scraper.core import ConfigurationError, ListingTimeoutError, ScraperConfig, logger
from bushinavi_scraper.dates import build_listing_url, last_week_window, today_in_tokyo
from bushinavi_scraper.output import post_records, write_records
from bushinavi_scraper.pipeline import run_pipeline

POST_JSON_FILE = Path('post_decks.json')
DEBUG_JSON_FILE = Path('debug_decks.json')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Bushi Navi Scraper - Collect tournament decks from Bushi Navi / Decklog',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  GAS_POST_URL=https://script.google.com/... %(prog)s
  %(prog)s --debug                      # write debug_decks.json, no POST
  %(prog)s --start-date 2026-10-05 --end-date 2026-10-11 --debug
        '''
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help=f'Write decks to {DEBUG_JSON_FILE} instead of POSTing them'
    )

    parser.add_argument(
        '--output-post-json',
        action='store_true',
        help=f'Also write the POST body to {POST_JSON_FILE}'
    )

    parser.add_argument(
        '--post-url',
        default=os.environ.get('GAS_POST_URL'),
        help='Endpoint to POST decks to (default: GAS_POST_URL env var)'
    )

    parser.add_argument(
        '--start-date',
        type=date.fromisoformat,
        help='First day of the reporting window (YYYY-MM-DD, default: last Monday)'
    )

    parser.add_argument(
        '--end-date',
        type=date.fromisoformat,
        help='Last day of the reporting window (YYYY-MM-DD, default: last Sunday)'
    )

    parser.add_argument(
        '--executable-path',
        default=os.environ.get('CHROMIUM_PATH'),
        help='Chromium executable (default: CHROMIUM_PATH env var, else Playwright\'s bundled browser)'
    )

    parser.add_argument(
        '--no-headless',
        action='store_true',
        help='Show browser window instead of running headless'
    )

    parser.add_argument(
        '--max-event-pages',
        type=int,
        default=4,
        help='Max event pages open at once, 0 for no limit (default: 4)'
    )

    parser.add_argument(
        '--max-deck-pages',
        type=int,
        default=8,
        help='Max deck pages open at once, 0 for no limit (default: 8)'
    )

    parser.add_argument(
        '--max-retries',
        type=int,
        default=3,
        help='Retries per deck after the first attempt (default: 3)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser


def check_delivery_config(debug: bool, post_url: Optional[str]):
    """Remote delivery needs an endpoint; debug runs never POST"""
    if not debug and not post_url:
        raise ConfigurationError("GAS_POST_URL is not set.")


def resolve_window(start: Optional[date], end: Optional[date]) -> tuple:
    default_start, default_end = last_week_window(today_in_tokyo())
    return start or default_start, end or default_end


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logger.setLevel('DEBUG')

    try:
        check_delivery_config(args.debug, args.post_url)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    if args.max_retries < 0:
        parser.error("--max-retries must be 0 or more")
    if args.max_event_pages < 0:
        parser.error("--max-event-pages must be 0 or more")
    if args.max_deck_pages < 0:
        parser.error("--max-deck-pages must be 0 or more")

    start, end = resolve_window(args.start_date, args.end_date)
    if start > end:
        parser.error(f"--start-date {start} is after --end-date {end}")

    config = ScraperConfig(
        headless=not args.no_headless,
        executable_path=args.executable_path,
        max_retries=args.max_retries,
        max_event_pages=args.max_event_pages,
        max_deck_pages=args.max_deck_pages
    )
    listing_url = build_listing_url(start, end, config)
    logger.info(f"Reporting window: {start} .. {end}")

    try:
        result = asyncio.run(run_pipeline(listing_url, config))
    except ListingTimeoutError as e:
        logger.error(f"Run aborted: {e}")
        return 1

    records = result.to_list()
    exit_code = 0

    if args.output_post_json:
        write_records(records, POST_JSON_FILE)

    if args.debug:
        write_records(records, DEBUG_JSON_FILE)
    elif not post_records(records, args.post_url):
        exit_code = 1

    print(f"\n{'='*50}")
    print(f"Run Complete: {len(result.event_ids)} events, {result.total_decks} decks")
    print(f"Window: {start} .. {end}")
    print(f"{'='*50}")

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
