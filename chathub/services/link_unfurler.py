"""Link preview fetching.

Fetches a URL and extracts Open Graph / Twitter card / plain HTML metadata.
Never raises: any failure degrades to a preview that only echoes the URL.
"""

import asyncio
import logging
from html.parser import HTMLParser
from urllib.parse import urljoin

import httpx

from chathub.config import settings
from chathub.schemas import LinkPreview

logger = logging.getLogger(__name__)

_TITLE_KEYS = ("og:title", "twitter:title")
_DESCRIPTION_KEYS = ("og:description", "twitter:description", "description")
_IMAGE_KEYS = ("og:image", "og:image:url", "twitter:image", "twitter:image:src")


class _MetadataParser(HTMLParser):
    """Collects <meta> properties and the document <title>."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.meta: dict[str, str] = {}
        self.title_parts: list[str] = []
        self._in_title = False

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "title":
            self._in_title = True
        elif tag == "meta":
            values = {k.lower(): v for k, v in attrs if v is not None}
            key = (values.get("property") or values.get("name") or "").strip().lower()
            content = (values.get("content") or "").strip()
            # First occurrence wins
            if key and content and key not in self.meta:
                self.meta[key] = content

    def handle_endtag(self, tag: str) -> None:
        if tag == "title":
            self._in_title = False

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self.title_parts.append(data)

    def first(self, keys: tuple[str, ...]) -> str | None:
        for key in keys:
            if self.meta.get(key):
                return self.meta[key]
        return None

    @property
    def title(self) -> str | None:
        return " ".join("".join(self.title_parts).split()) or None


def parse_preview(html: str, url: str, base_url: str | None = None) -> LinkPreview:
    """Extract preview metadata from an HTML document."""
    parser = _MetadataParser()
    parser.feed(html)
    parser.close()

    image = parser.first(_IMAGE_KEYS)
    if image:
        image = urljoin(base_url or url, image)

    return LinkPreview(
        title=parser.first(_TITLE_KEYS) or parser.title,
        description=parser.first(_DESCRIPTION_KEYS),
        image=image,
        url=url,
    )


class LinkUnfurler:
    """
    Fetches link previews with a bounded timeout.

    Args:
        timeout: Overall time budget in seconds for one unfurl
        max_bytes: Maximum number of body bytes read from the page
        transport: Optional httpx transport (used to stub the network in tests)
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else settings.unfurl_timeout_seconds
        self.max_bytes = max_bytes if max_bytes is not None else settings.unfurl_max_bytes
        self._transport = transport

    async def unfurl(self, url: str) -> LinkPreview:
        """Return a preview for url; on any error only the url is filled in."""
        try:
            return await asyncio.wait_for(self._fetch_preview(url), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"[Unfurl] Failed to unfurl {url!r}: {type(e).__name__}: {e}")
            return LinkPreview(url=url)

    async def _fetch_preview(self, url: str) -> LinkPreview:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.unfurl_user_agent, "Accept": "text/html,*/*;q=0.5"},
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()

                content_type = response.headers.get("content-type", "").lower()
                if "html" not in content_type:
                    logger.debug(f"[Unfurl] Skipping non-HTML content ({content_type}) at {url}")
                    return LinkPreview(url=url)

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self.max_bytes:
                        break

                encoding = response.charset_encoding or "utf-8"
                final_url = str(response.url)

        html = bytes(body[: self.max_bytes]).decode(encoding, errors="replace")
        return parse_preview(html, url=url, base_url=final_url)
