"""
Locates the currently published register CSV.

The gov.uk publication page lists the register as an attachment. The
attachment anchor carries the ``govuk-link`` and ``gem-c-attachment__link``
classes; its ``href`` is the CSV URL, which embeds the publication date.
"""

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from sponsor_sync.errors import NotFoundError
from sponsor_sync.ingestion.http_client import HTTPClient

logger = logging.getLogger(__name__)

ATTACHMENT_LINK_SELECTOR = "a.govuk-link.gem-c-attachment__link"


def find_attachment_link(html: str, base_url: str) -> str:
    """
    Extract the first attachment link from a publication page.

    Args:
        html: Page HTML
        base_url: Page URL, used to resolve relative hrefs

    Returns:
        Absolute URL of the attachment

    Raises:
        NotFoundError: If no attachment anchor with an href exists
    """
    soup = BeautifulSoup(html, "html.parser")
    anchor = soup.select_one(ATTACHMENT_LINK_SELECTOR)

    if anchor is None:
        raise NotFoundError(f"No attachment link found on {base_url}")

    href = (anchor.get("href") or "").strip()
    if not href:
        raise NotFoundError(f"Attachment link on {base_url} has no href")

    return urljoin(base_url, href)


class SourceLocator:
    """
    Finds the register CSV URL on the listing page.

    Usage:
        async with HTTPClient() as http:
            locator = SourceLocator(http, page_url)
            csv_url = await locator.locate()
    """

    def __init__(self, http_client: HTTPClient, page_url: str):
        self._http = http_client
        self._page_url = page_url

    @property
    def page_url(self) -> str:
        return self._page_url

    async def locate(self) -> str:
        """
        Fetch the listing page and return the CSV URL.

        Raises:
            FetchError: If the page cannot be fetched
            NotFoundError: If the page has no attachment link
        """
        response = await self._http.get(self._page_url)
        url = find_attachment_link(response.text, self._page_url)
        logger.info(f"Located register CSV: {url}")
        return url


class FixedSourceLocator:
    """Locator that always returns a known CSV URL (manual re-runs)."""

    def __init__(self, url: str):
        self._url = url

    async def locate(self) -> str:
        return self._url
