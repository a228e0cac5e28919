"""Tests for the streaming snapshot loader."""

import httpx
import pytest
import respx

from sponsor_sync.errors import FetchError, MalformedUrlError, ParseError
from sponsor_sync.ingestion.http_client import HTTPClient, RetryConfig
from sponsor_sync.ingestion.loader import SnapshotLoader, extract_snapshot_date
from tests.conftest import REGISTER_HEADER, make_csv

CSV_URL = "https://assets.example.gov.uk/media/x/register-2024-06-01.csv"


async def _load(body: str | bytes, url: str = CSV_URL):
    respx.get(url).mock(return_value=httpx.Response(200, content=body if isinstance(body, bytes) else body.encode("utf-8")))
    async with HTTPClient(RetryConfig(max_retries=0)) as http:
        return await SnapshotLoader(http).load(url)


class TestExtractSnapshotDate:
    def test_extracts_token(self):
        assert extract_snapshot_date(CSV_URL) == "2024-06-01"

    def test_first_token_wins(self):
        url = "https://x/2024-06-01/register-2023-01-01.csv"
        assert extract_snapshot_date(url) == "2024-06-01"

    def test_missing_token(self):
        with pytest.raises(MalformedUrlError):
            extract_snapshot_date("https://x/register.csv")

    def test_impossible_date(self):
        with pytest.raises(MalformedUrlError):
            extract_snapshot_date("https://x/register-2024-13-45.csv")


class TestSnapshotLoader:
    @pytest.mark.asyncio
    @respx.mock
    async def test_parses_rows_with_header_fields(self):
        rows = await _load(make_csv(3))

        assert len(rows) == 3
        assert rows[0].fields["Organisation Name"] == "Company 0 Ltd"
        assert rows[0].fields["Type & Rating"] == "Worker (A rating)"
        assert rows[2].fields["Organisation Name"] == "Company 2 Ltd"

    @pytest.mark.asyncio
    @respx.mock
    async def test_every_row_stamped_with_url_date(self):
        body = "Organisation Name,date\nAcme Ltd,1999-01-01\nBeta Ltd,2001-02-03\n"
        rows = await _load(body)

        assert [row.date for row in rows] == ["2024-06-01", "2024-06-01"]
        assert all(row.to_document()["date"] == "2024-06-01" for row in rows)

    @pytest.mark.asyncio
    @respx.mock
    async def test_quoted_field_spanning_lines(self):
        body = 'Organisation Name,Town/City\n"Acme\nHoldings, Ltd",Leeds\nBeta Ltd,York\n'
        rows = await _load(body)

        assert len(rows) == 2
        assert rows[0].fields["Organisation Name"] == "Acme\nHoldings, Ltd"
        assert rows[1].fields["Town/City"] == "York"

    @pytest.mark.asyncio
    @respx.mock
    async def test_escaped_quotes(self):
        body = 'Organisation Name,Town/City\n"The ""Best"" Ltd",Bath\n'
        rows = await _load(body)

        assert rows[0].fields["Organisation Name"] == 'The "Best" Ltd'

    @pytest.mark.asyncio
    @respx.mock
    async def test_strips_bom_from_header(self):
        rows = await _load(b"\xef\xbb\xbfOrganisation Name,Route\nAcme Ltd,Skilled Worker\n")

        assert list(rows[0].fields) == ["Organisation Name", "Route"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_skips_blank_lines_and_keeps_duplicates(self):
        body = "Organisation Name\n\nAcme Ltd\nAcme Ltd\n\n"
        rows = await _load(body)

        assert [row.fields["Organisation Name"] for row in rows] == ["Acme Ltd", "Acme Ltd"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_header_only(self):
        assert await _load(REGISTER_HEADER + "\n") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_body(self):
        assert await _load("") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_repeated_header_name_aborts_load(self):
        body = "Organisation Name,Route,Route\nAcme Ltd,Skilled Worker,Global Business Mobility\n"
        with pytest.raises(ParseError, match="Duplicate column 'Route'"):
            await _load(body)

    @pytest.mark.asyncio
    @respx.mock
    async def test_header_names_compared_after_stripping(self):
        body = "Organisation Name, Route,Route \nAcme Ltd,a,b\n"
        with pytest.raises(ParseError):
            await _load(body)

    @pytest.mark.asyncio
    @respx.mock
    async def test_short_row_aborts_load(self):
        body = "Organisation Name,Town/City\nAcme Ltd,Leeds\nBroken Ltd\n"
        with pytest.raises(ParseError):
            await _load(body)

    @pytest.mark.asyncio
    @respx.mock
    async def test_unterminated_quote_aborts_load(self):
        body = 'Organisation Name,Town/City\n"Acme Ltd,Leeds\n'
        with pytest.raises(ParseError):
            await _load(body)

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_failure(self):
        respx.get(CSV_URL).mock(return_value=httpx.Response(404))

        async with HTTPClient(RetryConfig(max_retries=0)) as http:
            with pytest.raises(FetchError):
                await SnapshotLoader(http).load(CSV_URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_url_fails_before_fetch(self):
        route = respx.get("https://x/register.csv").mock(return_value=httpx.Response(200))

        async with HTTPClient() as http:
            with pytest.raises(MalformedUrlError):
                await SnapshotLoader(http).load("https://x/register.csv")

        assert not route.called
