"""Web research tools: DuckDuckGo search and readable page fetches."""

from __future__ import annotations

import logging
import re
from typing import Mapping, Protocol
from urllib.parse import parse_qs, quote, urlparse

import httpx
from bs4 import BeautifulSoup
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .arguments import FetchWebpageRequest, WebSearchRequest
from .base import BaseTool, ToolContext, ToolResult
from .errors import NetworkError

LOGGER = logging.getLogger(__name__)

SEARCH_URL = "https://html.duckduckgo.com/html/?q="
MAX_BODY_BYTES = 2_000_000
MAX_REDIRECTS = 3
SEARCH_TIMEOUT_SECONDS = 15.0
FETCH_TIMEOUT_SECONDS = 20.0
MAX_SEARCH_RESULTS = 10
MAX_FETCH_CHARS = 50_000
SNIPPET_CHARS = 300

DEFAULT_HEADERS: Mapping[str, str] = {
    "User-Agent": "Mozilla/5.0 (compatible; DeepCode/1.0; Agent Core)",
    "Accept": "text/html,application/xhtml+xml,text/plain,*/*",
    "Accept-Language": "en-US,en;q=0.9",
}

_TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)


class HttpFetcher(Protocol):
    """Fetches a URL and returns its body as text, raising :class:`NetworkError`."""

    async def get(self, url: str, *, timeout: float = SEARCH_TIMEOUT_SECONDS) -> str:
        ...


class HttpxFetcher:
    """:class:`HttpFetcher` on ``httpx.AsyncClient`` with bounded redirects and body size."""

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 2,
        retry_min_seconds: float = 0.5,
        retry_max_seconds: float = 4.0,
        max_bytes: int = MAX_BODY_BYTES,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._transport = transport
        self._max_retries = max(1, max_retries)
        self._retry_min_seconds = retry_min_seconds
        self._retry_max_seconds = retry_max_seconds
        self._max_bytes = max(1, max_bytes)
        self._headers = dict(headers or DEFAULT_HEADERS)

    async def get(self, url: str, *, timeout: float = SEARCH_TIMEOUT_SECONDS) -> str:
        try:
            async for attempt in self._retrying():
                with attempt:
                    body = await self._get_once(url, timeout)
        except httpx.TimeoutException as exc:
            raise NetworkError(message="Request timed out", url=url) from exc
        except httpx.TooManyRedirects as exc:
            raise NetworkError(message=f"Too many redirects (max {MAX_REDIRECTS})", url=url) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(message=str(exc) or exc.__class__.__name__, url=url) from exc
        return body

    async def _get_once(self, url: str, timeout: float) -> str:
        async with httpx.AsyncClient(
            transport=self._transport,
            headers=self._headers,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=timeout,
        ) as client:
            async with client.stream("GET", url) as response:
                if not 200 <= response.status_code < 300:
                    raise NetworkError(
                        message=f"HTTP {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )
                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) >= self._max_bytes:
                        LOGGER.debug("Body of %s exceeded %d bytes; truncating", url, self._max_bytes)
                        break
                encoding = response.encoding or "utf-8"
                return bytes(buffer[: self._max_bytes]).decode(encoding, errors="replace")

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._retry_min_seconds, max=self._retry_max_seconds),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        )


# -----------------------------------------------------------------------------
# HTML helpers
# -----------------------------------------------------------------------------

_DROPPED_TAGS = ("script", "style", "nav", "footer", "noscript", "head")
_BLOCK_TAGS = ("p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "hr", "pre", "blockquote")


def html_to_text(markup: str) -> str:
    """Reduce an HTML page to readable text, one block element per line."""

    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup.find_all(_DROPPED_TAGS):
        tag.decompose()
    for tag in soup.find_all("br"):
        tag.replace_with("\n")
    for tag in soup.find_all("li"):
        tag.insert(0, "• ")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.append("\n")

    lines = (" ".join(line.split()) for line in soup.get_text().split("\n"))
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def parse_search_results(markup: str, limit: int) -> list[tuple[str, str, str]]:
    """Extract ``(title, url, snippet)`` triples from DuckDuckGo's HTML results page."""

    soup = BeautifulSoup(markup, "html.parser")
    results: list[tuple[str, str, str]] = []
    for block in soup.find_all(class_="result"):
        if len(results) >= limit:
            break
        link = block.find("a", class_="result__a")
        if link is None:
            continue
        snippet_tag = block.find(class_="result__snippet")
        title = " ".join(link.get_text().split()) or "No title"
        snippet = " ".join(snippet_tag.get_text().split()) if snippet_tag else ""
        results.append((title, _unwrap_redirect(link.get("href", "")), snippet[:SNIPPET_CHARS]))
    return results


def _unwrap_redirect(href: str) -> str:
    target = parse_qs(urlparse(href).query).get("uddg")
    return target[0] if target else href


class WebSearchTool(BaseTool):
    """Searches the web through DuckDuckGo's HTML endpoint (no API key)."""

    name = "web_search"
    request_type = WebSearchRequest

    async def execute(self, context: ToolContext, request: WebSearchRequest) -> ToolResult:
        fetcher = context.http_fetcher or HttpxFetcher()
        limit = min(max(1, request.max_results), MAX_SEARCH_RESULTS)
        try:
            markup = await fetcher.get(SEARCH_URL + quote(request.query, safe=""), timeout=SEARCH_TIMEOUT_SECONDS)
        except NetworkError as exc:
            return ToolResult.failure(f"Web search failed: {exc.message}")

        results = parse_search_results(markup, limit)
        if not results:
            return ToolResult(success=True, output=f'No search results found for "{request.query}".')
        formatted = "\n\n".join(
            f"{index}. {title}\n   URL: {url}\n   {snippet}"
            for index, (title, url, snippet) in enumerate(results, start=1)
        )
        return ToolResult(
            success=True,
            output=f'Search results for "{request.query}" ({len(results)} results):\n\n{formatted}',
        )


class FetchWebpageTool(BaseTool):
    """Fetches a page and returns its readable text, capped in length."""

    name = "fetch_webpage"
    request_type = FetchWebpageRequest

    async def execute(self, context: ToolContext, request: FetchWebpageRequest) -> ToolResult:
        if not request.url.startswith(("http://", "https://")):
            return ToolResult.failure("URL must start with http:// or https://")
        fetcher = context.http_fetcher or HttpxFetcher()
        try:
            markup = await fetcher.get(request.url, timeout=FETCH_TIMEOUT_SECONDS)
        except NetworkError as exc:
            return ToolResult.failure(f"Failed to fetch {request.url}: {exc.message}")

        text = html_to_text(markup)
        limit = min(request.max_length if request.max_length > 0 else 15_000, MAX_FETCH_CHARS)
        if len(text) > limit:
            text = text[:limit] + "\n\n... (truncated)"
        return ToolResult(success=True, output=f"Content from {request.url} ({len(text)} chars):\n\n{text}")


__all__ = [
    "HttpFetcher",
    "HttpxFetcher",
    "html_to_text",
    "parse_search_results",
    "WebSearchTool",
    "FetchWebpageTool",
]
