#!/usr/bin/env python3
"""
Report external contributions to tracked GitHub repositories.

Collects issues, pull request reviews and commits for every repository in the
configuration file, groups them by author, drops company members, excluded
users and contributions from authors whose company or email matches a
repository's exclusion list, and prints per-author and per-repository counts.

Usage:
- python scan_contributions.py config.yaml -s 2021-05-01T00:00:00Z -e 2021-08-01T00:00:00Z
- python scan_contributions.py --output-dir contributions_reports -v
"""
import argparse
import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.contributions import ConfigError, ContributionAudit, load_config
from src.contributions.config import parse_time
from src.contributions.report import render_tables, select_outputs, write_reports
from src.contributions.tasks import peak_concurrency
from src.github import GitHubClient, GitHubError

# Load environment variables from .env
load_dotenv(override=True)


# -----------------------------
# Logging
# -----------------------------

def setup_logging(verbosity: int = 1, quiet: bool = False, level_name: Optional[str] = None):
    if quiet:
        verbosity = 0
    level = logging.INFO
    if level_name:
        level = getattr(logging, str(level_name).upper(), logging.INFO)
    else:
        if verbosity > 1:
            level = logging.DEBUG
        elif verbosity == 0:
            level = logging.WARNING
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    handlers = [logging.StreamHandler(sys.stderr)]
    try:
        os.makedirs('logs', exist_ok=True)
        handlers.append(logging.FileHandler('logs/contributions_scan.log'))
    except OSError as e:
        print(f"File logging disabled: {e}", file=sys.stderr)
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        handlers=handlers,
    )


# -----------------------------
# CLI
# -----------------------------

def _rfc3339(value: str) -> datetime.datetime:
    try:
        return parse_time(value, "time")
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(argv=None) -> argparse.Namespace:
    default_token = os.getenv("GITHUB_TOKEN")
    default_api = os.getenv("GITHUB_API", "https://api.github.com")
    default_config = os.getenv("CONTRIBUTIONS_CONFIG", "config.yaml")
    default_out = os.getenv("CONTRIBUTIONS_REPORT_DIR")

    p = argparse.ArgumentParser(description="GitHub Contributions: report external contributors to tracked repositories")
    p.add_argument("config", nargs="?", default=default_config, help=f"Path to configuration file (default: {default_config})")
    p.add_argument("-s", "--start", type=_rfc3339, help="Contribution start time in RFC 3339 format, ex: 2021-05-01T00:00:00-00:00")
    p.add_argument("-e", "--end", type=_rfc3339, help="Contribution end time in RFC 3339 format, ex: 2021-08-01T00:00:00-00:00")
    p.add_argument("--token", type=str, default=default_token, help="GitHub token (or set GITHUB_TOKEN)")
    p.add_argument("--api-base", type=str, default=default_api, help=f"GitHub API base (default: {default_api})")
    p.add_argument("--include-members", action="store_true", help="Keep contributors who belong to a company organization")
    p.add_argument("--output-dir", type=str, default=default_out, help="Also write contributions.json and contributions.md to this directory")
    p.add_argument("--workers", type=int, default=5, help="Concurrent repositories/authors (default 5)")
    # logging
    p.add_argument("-v", "--verbose", action="count", default=1, help="Increase verbosity (repeatable)")
    p.add_argument("-q", "--quiet", action="store_true", help="Suppress output")
    p.add_argument("--loglevel", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Explicit log level")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(verbosity=args.verbose, quiet=args.quiet, level_name=args.loglevel)

    if not args.token:
        logging.error("GitHub token is required. Set GITHUB_TOKEN in .env or pass --token")
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logging.error(f"Invalid configuration: {e}")
        return 1

    since = args.start or config.since
    until = args.end or config.until
    if since and until and since >= until:
        logging.error("Start time must be earlier than end time")
        return 1
    if not config.repos and not config.orgs:
        logging.error("No repositories or organizations configured")
        return 1

    workers = max(1, args.workers)
    with GitHubClient(token=args.token, base_url=args.api_base, pool_size=peak_concurrency(workers)) as client:
        audit = ContributionAudit(client, config, max_workers=workers)
        try:
            outputs = audit.run(since=since, until=until)
        except (GitHubError, ValueError) as e:
            logging.error(f"Contribution collection failed: {e}")
            return 1

    selected = select_outputs(outputs, include_members=args.include_members)
    sys.stdout.write(render_tables(selected))

    if args.output_dir:
        json_path, md_path = write_reports(selected, Path(args.output_dir), since=since, until=until)
        logging.info(f"Reports written: {json_path}, {md_path}")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logging.info("Scan interrupted by user")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        if logging.getLogger().getEffectiveLevel() <= logging.DEBUG:
            import traceback
            traceback.print_exc()
        sys.exit(1)
