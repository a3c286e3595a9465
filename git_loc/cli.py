"""Command line entry point for git-loc."""

import os
import sys
import logging
import argparse
from datetime import timedelta
from typing import List

from dotenv import load_dotenv

from .aggregator import ContributionAggregator
from .config import (DEFAULT_CACHE_DIR, DEFAULT_TOKEN_FILE, ReportConfig, build_fetch_config,
                     split_list)
from .dates import parse_date_or_ago
from .diff_accounting import CASUAL_COMMIT_THRESHOLD
from .exceptions import GitLocError
from .ledger import Ledger
from .output import OutputFormatter
from .summarizer import summarize


def configure_logging():
    """Configure logging (can be overridden by LOG_LEVEL environment variable)."""
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='git-loc',
        description='Count GitHub contributions (lines, commits, PRs) authored and reviewed by a user.'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    fetch = subparsers.add_parser(
        'get-github-data', aliases=['get-data', 'get-prs'],
        help='Fetch github contribution data for user'
    )
    fetch.set_defaults(command='get-github-data')
    fetch.add_argument('user', nargs='?', default=os.environ.get('GITHUB_USERNAME'),
                       help='Which user to get data for (default: $GITHUB_USERNAME)')
    fetch.add_argument('repos', nargs='*', default=split_list(os.environ.get('GITHUB_REPOS')),
                       help='Repositories to scan, as owner/name (default: $GITHUB_REPOS)')
    fetch.add_argument('--files-to-ignore', nargs='+',
                       default=split_list(os.environ.get('GIT_LOC_FILES_TO_IGNORE')),
                       help='Path substrings or regexes (marked as r///<regex>/<flags>) of files to leave out')
    fetch.add_argument('--casual-commit-threshold', '--file-size-threshold', type=int,
                       default=CASUAL_COMMIT_THRESHOLD,
                       help='How much can max(additions, deletions) of a file be before it seems '
                            'to be auto-generated? (Will generate a warning)')
    fetch.add_argument('--github-api-token-file', '--gh',
                       default=os.environ.get('GITHUB_TOKEN_FILE', DEFAULT_TOKEN_FILE),
                       help='File holding a github personal access token '
                            '(create one at https://github.com/settings/tokens)')
    fetch.add_argument('--cache-dir', default=os.environ.get('GIT_LOC_CACHE_DIR', DEFAULT_CACHE_DIR),
                       help='Folder for the PR caches and the contribution ledger')
    fetch.add_argument('--cache-freshness-hours', type=float, default=24,
                       help='Skip fetching a repository whose newest cached PR is younger than this')
    fetch.add_argument('--force-refresh', action='store_true',
                       help='Ignore cached PR listings and fetch the full history again')
    fetch.add_argument('--default-owner', default=os.environ.get('GIT_LOC_DEFAULT_OWNER'),
                       help='Owner used for repositories given without one')

    calculate = subparsers.add_parser(
        'calculate', aliases=['count'],
        help='Calculate contributions for user for a given time-range'
    )
    calculate.set_defaults(command='calculate')
    calculate.add_argument('from_time', metavar='from', nargs='?', default='6 months ago',
                           help='<num> <years|quarters|months|weeks|days|hours> ago, or a date')
    calculate.add_argument('to_time', metavar='to', nargs='?', default='0 months ago',
                           help='<num> <years|quarters|months|weeks|days|hours> ago, or a date')
    calculate.add_argument('--cache-dir', default=os.environ.get('GIT_LOC_CACHE_DIR', DEFAULT_CACHE_DIR),
                           help='Folder holding the contribution ledger')
    calculate.add_argument('--no-color', action='store_true', help='Print without ANSI colors')

    return parser


def get_github_data(args: argparse.Namespace):
    config = build_fetch_config(
        user=args.user,
        repos=args.repos,
        files_to_ignore=args.files_to_ignore,
        casual_commit_threshold=args.casual_commit_threshold,
        token_file=args.github_api_token_file,
        cache_dir=args.cache_dir,
        freshness=timedelta(hours=args.cache_freshness_hours),
        force_refresh=args.force_refresh,
        default_owner=args.default_owner
    )
    logging.info(f"Starting analysis of {len(config.repos)} repository/repositories for {config.user}")
    ledger = ContributionAggregator(config).run()
    logging.info(f"Ledger at {config.ledger_path} holds {len(ledger)} entries")


def calculate(args: argparse.Namespace):
    config = ReportConfig(
        from_time=parse_date_or_ago(args.from_time),
        to_time=parse_date_or_ago(args.to_time),
        cache_dir=args.cache_dir
    )
    ledger = Ledger.load(config.ledger_path)
    summary = summarize(ledger, config.from_time, config.to_time)
    OutputFormatter(use_color=not args.no_color).print_summary(summary, config.from_time, config.to_time)


COMMANDS = {
    'get-github-data': get_github_data,
    'calculate': calculate,
}


def main(argv: List[str] = None) -> int:
    """Run a git-loc command and return the process exit code."""
    # Load environment variables from .env file if it exists
    load_dotenv()
    configure_logging()

    args = build_parser().parse_args(argv)

    try:
        COMMANDS[args.command](args)
    except GitLocError as e:
        logging.error(str(e))
        return 1
    except Exception as e:
        logging.error(f"Error occurred: {e!r}")
        logging.debug("Traceback:", exc_info=True)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
