"""
LogParser Class - Handles parsing and validation

This module parses raw delimited log lines into Record objects.
"""

import logging
from typing import Iterable, Iterator, Union

from log_analytics.errors import FieldCountError, ParseError, StatusFormatError
from log_analytics.models.data_models import ParseSummary, Record
from log_analytics.utils.helpers import parse_status

logger = logging.getLogger(__name__)

FIELD_NAMES = ("ip", "timestamp", "url", "status", "user_agent")

ParseOutcome = Union[Record, ParseError]


class LogParser:
    """
    Parses raw log lines into Record objects.
    Responsibilities:
    - Split lines on the configured delimiter
    - Validate field count and status code
    - Skip blank lines and the optional header (first non-blank line
      with a non-numeric status; skip_header=False treats it as data)
    - Report malformed lines without stopping the stream
    """

    def __init__(self, delimiter: str = ",", skip_header: bool = True):
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.delimiter = delimiter
        self.skip_header = skip_header

    def parse_line(self, line: str, line_no: int = 1) -> Record:
        """
        Parse a single line into a Record.
        The user agent is the last column, so extra delimiters inside it
        are kept rather than counted as additional fields.
        """
        text = line.rstrip("\r\n")
        parts = text.split(self.delimiter, len(FIELD_NAMES) - 1)
        if len(parts) < len(FIELD_NAMES):
            raise FieldCountError(
                f"expected {len(FIELD_NAMES)} fields, got {len(parts)}", line_no, text
            )

        for name, value in zip(FIELD_NAMES, parts):
            if not value.strip():
                raise FieldCountError(f"empty field '{name}'", line_no, text)

        ip, timestamp, url, status_raw, user_agent = parts
        try:
            status = parse_status(status_raw)
        except ValueError:
            raise StatusFormatError(
                f"status is not an integer: {status_raw!r}", line_no, text
            ) from None

        return Record(ip=ip, timestamp=timestamp, url=url, status=status, user_agent=user_agent)

    def parse_lines(self, lines: Iterable[str]) -> Iterator[ParseOutcome]:
        """
        Lazily yield a Record or a ParseError for each non-blank line.
        Errors are yielded, not raised, so the caller picks the policy.
        """
        header_pending = self.skip_header
        for line_no, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            first, header_pending = header_pending, False
            try:
                yield self.parse_line(line, line_no)
            except StatusFormatError as exc:
                # a header has all five columns but a non-numeric status
                if first:
                    logger.debug("Skipping header line %d", line_no)
                    continue
                yield exc
            except ParseError as exc:
                yield exc

    def collect(self, lines: Iterable[str], strict: bool = False) -> ParseSummary:
        """
        Materialize all records.
        Default policy skips malformed lines and counts them; strict mode
        raises the first ParseError instead.
        """
        summary = ParseSummary()

        for outcome in self.parse_lines(lines):
            if isinstance(outcome, ParseError):
                if strict:
                    raise outcome
                logger.warning("Skipping malformed line %d: %s", outcome.line_no, outcome.message)
                summary.errors.append(outcome)
            else:
                summary.records.append(outcome)

        logger.info(
            "Parsed %d records (%d malformed lines skipped)",
            len(summary.records),
            summary.error_count,
        )
        return summary

