import time
import structlog
from datetime import date
from collections import Counter
from collections.abc import Iterable
from typing import TextIO
from src.common.utils import LogRecord, open_source, read_records
from src.common.logger import canonical_logger

logger = structlog.get_logger()


# Modular Functional Blocks (KISS + Type Hints + Docstrings)


def cookie_counter(
    records: Iterable[LogRecord], target_date: date, ctx=None
) -> Counter:
    """
    Counts cookie occurrences on target_date (UTC).

    The log is expected newest-first: the first record older than the target
    date ends the scan and nothing after it is read. Newer records are skipped
    wherever they appear, but older records placed before the target block
    cut the count short.
    """
    counts = Counter()
    for record in records:
        record_date = record.date
        if record_date == target_date:
            counts[record.cookie] += 1
        elif record_date < target_date:
            logger.debug(
                "early_exit",
                line_number=record.line_number,
                target_date=target_date.isoformat(),
            )
            if ctx:
                ctx.add_metric("early_exit_line", record.line_number)
            break
    return counts


def get_most_active(counts: Counter) -> list[str]:
    """Returns every cookie sharing the highest count, sorted lexicographically."""
    if not counts:
        return []
    max_count = max(counts.values())
    logger.debug("max_count", max_count=max_count, unique_cookies=len(counts))
    return sorted(cookie for cookie, count in counts.items() if count == max_count)


def find_most_active(stream: TextIO, target_date: date, ctx=None) -> list[str]:
    """Most active cookie(s) of an open cookie log for a UTC calendar date."""
    return get_most_active(cookie_counter(read_records(stream, ctx), target_date, ctx))


@canonical_logger(event_name="most_active_cookie_execution")
def most_active_cookie(file_path: str, target_date: date, ctx=None) -> list[str]:
    """
    Finds the most active cookie(s) of a log file (local or gs://) for a UTC date.
    Either returns the complete answer or raises; partial results are never returned.
    """
    if ctx:
        ctx.add_context(file_path=file_path, target_date=target_date.isoformat())
    logger.debug(
        "processing_log", file_path=file_path, target_date=target_date.isoformat()
    )

    # 1. Step 1: Stream, validate and count the target date
    t0 = time.perf_counter()
    with open_source(file_path) as stream:
        counts = cookie_counter(read_records(stream, ctx), target_date, ctx)
    if ctx:
        ctx.add_step("count_cookies", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("unique_cookies", len(counts))
        ctx.add_metric("matched_records", sum(counts.values()))

    # 2. Step 2: Select the cookies sharing the maximum count
    t0 = time.perf_counter()
    result = get_most_active(counts)
    if ctx:
        ctx.add_step("select_most_active", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("max_count", counts[result[0]] if result else 0)
        ctx.add_metric("output_rows", len(result))

    return result
