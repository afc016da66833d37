import os
import sys
import argparse
import structlog
from src.common.errors import CookieLogError, SourceReadError
from src.common.logger import configure_logging
from src.common.utils import parse_target_date
from src.most_active import most_active_cookie

__version__ = "1.0.0"

logger = structlog.get_logger()


# ---------------- CLI ----------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="most_active_cookie",
        description="Finds the most active cookie(s) for a specific day from a cookie log file.",
    )
    parser.add_argument(
        "-f",
        "--file",
        required=True,
        help="Path to the cookie log file (CSV format, local path or gs://)",
    )
    parser.add_argument(
        "-d",
        "--date",
        required=True,
        help="Date to find the most active cookie (format: YYYY-MM-DD, UTC timezone)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Emit debug level log events"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser.parse_args(argv)


def _check_local_file(file_path: str) -> None:
    if file_path.startswith("gs://"):
        return
    if not os.path.isfile(file_path):
        raise SourceReadError(file_path, "File not found")
    if not os.access(file_path, os.R_OK):
        raise SourceReadError(file_path, "File is not readable")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        configure_logging("DEBUG")

    try:
        target_date = parse_target_date(args.date)
        _check_local_file(args.file)
        cookies = most_active_cookie(args.file, target_date)
    except CookieLogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not cookies:
        logger.info("no_cookies_found", target_date=target_date.isoformat())
    for cookie in cookies:
        print(cookie)
    return 0


if __name__ == "__main__":
    sys.exit(main())
