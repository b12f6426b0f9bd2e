"""
Web Search - recency correction for knowledge steps.

Queries SearXNG (JSON API, HTML fallback) over httpx and condenses the
results into a short numbered summary. Failures never propagate: search()
logs them and returns an empty result list, which summarizes to the fixed
"no current information" text.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from html import unescape
from typing import Any, Dict, List, Optional

import httpx

from config import RuntimeConfig
from errors import ExternalServiceError
from lexicon_loader import Lexicon
from logging_config import log_tool
from routers.chat_orchestration.session import utcnow

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 300

_RESULT_ARTICLE_RE = re.compile(
    r"<article[^>]*class=[\"'][^\"']*result[^\"']*[\"'][^>]*>(.*?)</article>",
    re.IGNORECASE | re.DOTALL,
)
_LINK_RE = re.compile(r'<a[^>]*href=["\']([^"\']+)["\'][^>]*>(.*?)</a>', re.IGNORECASE | re.DOTALL)
_CONTENT_RE = re.compile(
    r'<p[^>]*class=["\'][^"\']*content[^"\']*["\'][^>]*>(.*?)</p>',
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    snippet: str
    published_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "publishedDate": self.published_date,
        }


@dataclass
class SearchResponse:
    query: str
    results: List[SearchResult] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)


def _strip_html(value: str) -> str:
    cleaned = re.sub(r"<[^>]+>", " ", value or "")
    cleaned = unescape(cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def _parse_json_results(data: Any, limit: int) -> List[SearchResult]:
    """Raises ValueError when the payload is not ``{"results": [...]}``."""
    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise ValueError("unexpected SearXNG JSON shape")

    results = []
    for item in data["results"]:
        if not isinstance(item, dict):
            continue
        results.append(
            SearchResult(
                title=str(item.get("title") or "").strip(),
                url=str(item.get("url") or "").strip(),
                snippet=str(item.get("content") or "").strip()[:SNIPPET_CHARS],
                published_date=item.get("publishedDate") or None,
            )
        )
        if len(results) >= limit:
            break
    return results


def _parse_html_results(html_text: str, limit: int) -> List[SearchResult]:
    results = []
    for block in _RESULT_ARTICLE_RE.findall(html_text or ""):
        link_match = _LINK_RE.search(block)
        if not link_match:
            continue
        url = unescape(link_match.group(1)).strip()
        if not url or url.startswith("/"):
            continue
        content_match = _CONTENT_RE.search(block)
        results.append(
            SearchResult(
                title=_strip_html(link_match.group(2)),
                url=url,
                snippet=(_strip_html(content_match.group(1)) if content_match else "")[:SNIPPET_CHARS],
            )
        )
        if len(results) >= limit:
            break
    return results


class WebSearchService:
    """Search-and-summarize boundary used by the ResponseComposer."""

    def __init__(self, config: RuntimeConfig, lexicon: Lexicon, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            config: Runtime config (searxng_* fields are read on every call)
            lexicon: Supplies trigger words and summary texts
            transport: Optional httpx transport (tests)
        """
        self.config = config
        self._triggers = [t.lower() for t in lexicon.search_triggers]
        self._no_results = lexicon.search.get("no_results", "最新の情報を取得できませんでした。")
        self._header = lexicon.search.get("summary_header", "最新情報（{date}時点）:")
        self._transport = transport

    def should_search(self, text: str) -> bool:
        lowered = text.lower()
        return any(trigger in lowered for trigger in self._triggers)

    def _fetch(self, query: str, limit: int) -> List[SearchResult]:
        """Fetch results from SearXNG with JSON->HTML fallback.

        Raises:
            ExternalServiceError: disabled, unreachable, timed out or HTTP error
        """
        if not self.config.searxng_enabled:
            raise ExternalServiceError("Web search is disabled", service="searxng", upstream_status=503)

        base_url = self.config.searxng_url.rstrip("/")
        params = {"q": query, "categories": "general"}
        if self.config.searxng_language:
            params["language"] = self.config.searxng_language

        try:
            with httpx.Client(
                timeout=float(self.config.searxng_timeout_s),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                for response_format in ("json", "html"):
                    request_params = dict(params)
                    if response_format == "json":
                        request_params["format"] = "json"

                    try:
                        response = client.get(f"{base_url}/search", params=request_params)
                        response.raise_for_status()
                    except httpx.HTTPStatusError as exc:
                        status_code = exc.response.status_code
                        if response_format == "json" and status_code in {400, 403, 404, 406, 415}:
                            logger.warning(f"SearXNG JSON format unavailable (HTTP {status_code}); retrying with HTML")
                            continue
                        raise ExternalServiceError(
                            "Search service error",
                            details=f"SearXNG returned status {status_code}",
                            service="searxng",
                            upstream_status=status_code,
                        ) from exc

                    if response_format == "json":
                        try:
                            return _parse_json_results(response.json(), limit)
                        except ValueError as exc:
                            logger.warning(f"SearXNG JSON parse failed ({exc}); retrying with HTML")
                            continue

                    return _parse_html_results(response.text, limit)
        except httpx.TimeoutException as exc:
            raise ExternalServiceError("Search service timed out", service="searxng") from exc
        except httpx.RequestError as exc:
            raise ExternalServiceError(
                "Search service unavailable", details=str(exc), service="searxng"
            ) from exc

        return []

    def search(self, query: str, max_results: Optional[int] = None) -> SearchResponse:
        """Run a search. Any failure yields an empty result list."""
        limit = max(1, int(max_results or self.config.searxng_max_results or 5))
        log_tool(logger, "web_search", "start", query=query[:60])
        try:
            results = self._fetch(query, limit)
        except ExternalServiceError as e:
            logger.warning(f"Web search failed: {e}")
            results = []
        log_tool(logger, "web_search", "end", results=len(results))
        return SearchResponse(query=query, results=results)

    def summarize(self, response: SearchResponse) -> str:
        if not response.results:
            return self._no_results

        lines = [f"{i}. {r.title}: {r.snippet}" for i, r in enumerate(response.results, start=1)]
        stamp = response.timestamp
        header = self._header.format(date=f"{stamp.year}/{stamp.month}/{stamp.day}")
        return header + "\n" + "\n".join(lines)
