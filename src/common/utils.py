import io
import re
import msgspec
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from collections.abc import Iterator
from typing import Annotated, TextIO
from src.common.errors import (
    EmptySourceError,
    InvalidDateError,
    InvalidTimestampError,
    MalformedRecordError,
    MissingHeaderError,
    SourceReadError,
)


HEADER_COLUMN = "cookie"
DELIMITER = ","
ENCODING = "utf-8-sig"


# ISO-8601 offset date-time: seconds, fraction and offset seconds are optional
ISO_OFFSET_DATE_TIME = re.compile(
    r"(?P<local>\d{4}-\d{2}-\d{2}T\d{2}:\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,9}))?)?"
    r"(?:(?P<utc>Z)|(?P<sign>[+-])(?P<hours>\d{2}):(?P<minutes>\d{2})(?::(?P<offset_seconds>\d{2}))?)",
    re.ASCII,
)
MAX_OFFSET = timedelta(hours=18)


# --- 1. MSGSPEC STRUCTS (immutable, validated records) ---


class LogRecord(msgspec.Struct, frozen=True):
    """One `cookie,timestamp` entry. The timestamp must carry an explicit offset."""

    cookie: str
    timestamp: Annotated[datetime, msgspec.Meta(tz=True)]
    line_number: int = 0

    @property
    def date(self) -> date:
        """Calendar date of the instant once converted to UTC."""
        return self.timestamp.astimezone(timezone.utc).date()


def _parse_offset(match: re.Match) -> timedelta | None:
    if match["utc"]:
        return timedelta(0)
    minutes, seconds = int(match["minutes"]), int(match["offset_seconds"] or 0)
    if minutes > 59 or seconds > 59:
        return None
    offset = timedelta(hours=int(match["hours"]), minutes=minutes, seconds=seconds)
    if offset > MAX_OFFSET:
        return None
    return -offset if match["sign"] == "-" else offset


def parse_timestamp(timestamp: str, line_number: int) -> datetime:
    """
    Parses an ISO-8601 offset date-time such as 2018-12-09T14:19:00+00:00.
    Seconds may be omitted; fractions beyond microseconds are truncated.
    """
    match = ISO_OFFSET_DATE_TIME.fullmatch(timestamp)
    offset = _parse_offset(match) if match else None
    if offset is None:
        raise InvalidTimestampError(timestamp, line_number)

    local = f"{match['local']}:{match['second'] or '00'}"
    if match["fraction"]:
        local = f"{local}.{match['fraction'][:6]}"

    try:
        naive = msgspec.convert(local, type=datetime)
    except msgspec.ValidationError as e:
        raise InvalidTimestampError(timestamp, line_number) from e
    return naive.replace(tzinfo=timezone(offset))


def parse_record(line: str, line_number: int) -> LogRecord:
    """
    Parses a single data line into a LogRecord.
    Splits only on the first comma; the timestamp must be an offset date-time.
    """
    parts = line.split(DELIMITER, 1)
    if len(parts) != 2:
        raise MalformedRecordError(
            "Invalid format: expected 'cookie,timestamp'", line_number
        )

    cookie, timestamp = parts[0].strip(), parts[1].strip()
    if not cookie:
        raise MalformedRecordError("Cookie name cannot be empty", line_number)
    if not timestamp:
        raise MalformedRecordError("Timestamp cannot be empty", line_number)

    return msgspec.convert(
        {
            "cookie": cookie,
            "timestamp": parse_timestamp(timestamp, line_number),
            "line_number": line_number,
        },
        type=LogRecord,
    )


def parse_target_date(value: str) -> date:
    """Parses the caller supplied YYYY-MM-DD date (already UTC)."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as e:
        raise InvalidDateError(value) from e


# --- 2. SOURCES (local files and GCS) ---


def _get_gcs_blob(file_path: str):
    """Auxiliar para obtener el blob de GCS."""
    from google.cloud import storage

    path_parts = file_path.replace("gs://", "").split("/")
    bucket_name = path_parts[0]
    blob_name = "/".join(path_parts[1:])
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    return bucket.blob(blob_name)


def _download_gcs(file_path: str) -> io.BytesIO:
    from google.api_core.exceptions import GoogleAPIError
    from google.auth.exceptions import GoogleAuthError

    stream = io.BytesIO()
    try:
        _get_gcs_blob(file_path).download_to_file(stream)
    except (GoogleAPIError, GoogleAuthError) as e:
        raise SourceReadError(file_path, str(e)) from e
    stream.seek(0)
    return stream


@contextmanager
def open_source(file_path: str) -> Iterator[TextIO]:
    """
    Opens a cookie log as a text stream. Supports local paths and GCS (gs://).
    The stream is closed on every exit path, including early exit and errors.
    """
    if file_path.startswith("gs://"):
        file_obj = io.TextIOWrapper(_download_gcs(file_path), encoding=ENCODING)
    else:
        try:
            file_obj = open(file_path, "r", encoding=ENCODING)
        except OSError as e:
            raise SourceReadError(file_path, e.strerror or str(e)) from e

    try:
        yield file_obj
    finally:
        file_obj.close()


# --- 3. STREAMING READER ---


def _numbered_lines(stream: TextIO) -> Iterator[tuple[int, str]]:
    try:
        yield from enumerate(stream, start=1)
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(str(getattr(stream, "name", "<stream>")), str(e)) from e


def read_records(stream: TextIO, ctx=None) -> Iterator[LogRecord]:
    """
    Generator that validates the header and yields one LogRecord per data line.
    Lines are only parsed when requested, so a consumer that stops early
    leaves the rest of the stream untouched.
    """
    lines = _numbered_lines(stream)

    first = next(lines, None)
    if first is None:
        raise EmptySourceError()
    if not first[1].lower().startswith(HEADER_COLUMN):
        raise MissingHeaderError(first[1])

    for line_number, line in lines:
        if not line.strip():
            if ctx:
                ctx.register_error(
                    "blank_line", "Skipping empty line", line_number=line_number
                )
            continue
        yield parse_record(line, line_number)
