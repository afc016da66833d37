class CookieLogError(Exception):
    """Base class for every failure raised while answering a cookie log query."""


class LogFormatError(CookieLogError, ValueError):
    """The log content is invalid (bad data, as opposed to a bad environment)."""

    kind = "format_error"

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        self.reason = message
        if line_number is not None:
            message = f"Invalid entry at line {line_number}: {message}"
        super().__init__(message)


class EmptySourceError(LogFormatError):
    kind = "empty_source"

    def __init__(self):
        super().__init__("File is empty")


class MissingHeaderError(LogFormatError):
    kind = "missing_header"

    def __init__(self, header: str):
        self.header = header
        super().__init__(
            f"Invalid file format: missing header (got {header.strip()!r})",
            line_number=1,
        )


class MalformedRecordError(LogFormatError):
    kind = "malformed_record"


class InvalidTimestampError(LogFormatError):
    kind = "invalid_timestamp"

    def __init__(self, timestamp: str, line_number: int):
        self.timestamp = timestamp
        super().__init__(f"Invalid timestamp format: {timestamp}", line_number)


class SourceReadError(CookieLogError, OSError):
    """The log could not be opened or read (missing file, permissions, storage)."""

    kind = "source_read_error"

    def __init__(self, file_path: str, message: str):
        self.file_path = file_path
        super().__init__(f"Failed to read {file_path}: {message}")


class InvalidDateError(CookieLogError, ValueError):
    """The requested target date is not a YYYY-MM-DD calendar date."""

    kind = "invalid_date"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid date format - {value}. Expected format: YYYY-MM-DD")
