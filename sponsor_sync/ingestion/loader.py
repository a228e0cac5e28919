"""
Snapshot loader: streams the register CSV into stamped rows.

The CSV is read line by line as it arrives. Lines are grouped into
logical records (a quoted cell may contain newlines) and each record is
handed to the ``csv`` module on its own, so parsing keeps pace with the
download instead of waiting for the whole body.

Every row is stamped with the date token from the CSV's URL, never with
a date found inside the file.
"""

import csv
import logging
import re
from collections.abc import AsyncIterator
from datetime import date

from sponsor_sync.errors import MalformedUrlError, ParseError
from sponsor_sync.ingestion.http_client import HTTPClient
from sponsor_sync.ingestion.schemas import RegisterRow

logger = logging.getLogger(__name__)

DATE_TOKEN_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
BOM = "\ufeff"


def extract_snapshot_date(url: str) -> str:
    """
    Extract the ``YYYY-MM-DD`` token embedded in a CSV URL.

    Args:
        url: Register CSV URL

    Returns:
        The first date token found

    Raises:
        MalformedUrlError: If the URL has no token or it is not a real date
    """
    match = DATE_TOKEN_PATTERN.search(url or "")
    if match is None:
        raise MalformedUrlError(f"No YYYY-MM-DD date in URL: {url!r}")

    token = match.group(0)
    try:
        date.fromisoformat(token)
    except ValueError as e:
        raise MalformedUrlError(f"Invalid date {token!r} in URL: {url!r}") from e

    return token


def parse_record(text: str, line_number: int) -> list[str]:
    """Parse one logical CSV record into its cells."""
    try:
        rows = list(csv.reader([text], strict=True))
    except csv.Error as e:
        raise ParseError(f"Malformed CSV at line {line_number}: {e}") from e

    if len(rows) != 1:
        raise ParseError(f"Malformed CSV at line {line_number}: expected one record")
    return rows[0]


async def iter_records(lines: AsyncIterator[str]) -> AsyncIterator[tuple[int, str]]:
    """
    Group physical lines into logical CSV records.

    A record is complete once its double quotes balance. Escaped quotes
    (``""``) come in pairs so they never upset the balance.

    Yields:
        (starting line number, record text) tuples; blank lines are skipped

    Raises:
        ParseError: If the body ends inside a quoted cell
    """
    pending: list[str] = []
    quotes = 0
    start = 0
    line_number = 0

    async for line in lines:
        line_number += 1
        if not pending:
            start = line_number
            if not line.strip():
                continue

        pending.append(line)
        quotes += line.count('"')

        if quotes % 2 == 0:
            yield start, "\n".join(pending)
            pending = []
            quotes = 0

    if pending:
        raise ParseError(f"Unterminated quoted field starting at line {start}")


def parse_header(text: str, line_number: int) -> list[str]:
    """Parse the header record into stripped, unique field names."""
    names = [name.strip() for name in parse_record(text.lstrip(BOM), line_number)]
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ParseError(f"Duplicate column {name!r} in header at line {line_number}")
        seen.add(name)
    return names


class SnapshotLoader:
    """
    Downloads and parses one register snapshot.

    Usage:
        async with HTTPClient() as http:
            rows = await SnapshotLoader(http).load(csv_url)
    """

    def __init__(self, http_client: HTTPClient):
        self._http = http_client

    async def load(self, url: str) -> list[RegisterRow]:
        """
        Load all rows of the CSV at ``url``.

        The header row names the fields. Each following record becomes a
        ``RegisterRow`` dated with the URL's date token. Any malformed
        record aborts the whole load.

        Raises:
            MalformedUrlError: If the URL has no date token (before any I/O)
            FetchError: On transport or HTTP failure
            ParseError: On a malformed record or a repeated header name
        """
        snapshot_date = extract_snapshot_date(url)
        rows: list[RegisterRow] = []
        header: list[str] | None = None

        async for line_number, text in iter_records(self._http.stream_lines(url)):
            if header is None:
                header = parse_header(text, line_number)
                continue

            cells = parse_record(text, line_number)
            if len(cells) != len(header):
                raise ParseError(
                    f"Row at line {line_number} has {len(cells)} fields, "
                    f"header has {len(header)}"
                )

            rows.append(RegisterRow(date=snapshot_date, fields=dict(zip(header, cells))))

        logger.info(f"Parsed {len(rows)} rows from CSV dated {snapshot_date}")
        return rows
