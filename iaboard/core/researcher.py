from __future__ import annotations

import asyncio
import json
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List

import httpx

from iaboard.llm.cache import get_cached, set_cached
from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

LOGGER = get_logger(__name__)

_ANCHOR_RE = re.compile(
    r'class="result__a"[^>]*href="(?P<href>[^"]+)"[^>]*>(?P<title>.*?)</a>', re.IGNORECASE | re.DOTALL
)
_SNIPPET_RE = re.compile(r'class="result__snippet"[^>]*>(?P<snippet>.*?)</', re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}


def build_market_query(product_type: str) -> str:
    return f"mercado {product_type or 'produto digital'} Brasil tendências marketing digital"


class MarketResearcher:
    """DuckDuckGo search for the market-analysis step. Results are cached in-process."""

    def _cache_key(self, query: str) -> str:
        return f"web_search::{query.strip()}"

    async def search(self, query: str, max_results: int | None = None) -> Dict[str, Any]:
        query = (query or "").strip()
        if not query:
            return {"query": "", "results": [], "cached": False}

        limit = max_results or get_settings().max_search_results
        cache_key = self._cache_key(query)
        cached = get_cached(cache_key)
        if cached:
            payload = json.loads(cached)
            payload["cached"] = True
            return payload

        try:
            results = await self._search_library(query, limit)
            if not results:
                results = await self._search_html(query, limit)
        except Exception as exc:
            LOGGER.warning("Web search failed: %s", exc)
            return {"query": query, "results": [], "cached": False, "error": str(exc)[:300]}

        payload = {
            "query": query,
            "results": [r.to_dict() for r in results],
            "cached": False,
            "timestamp_ms": int(time.time() * 1000),
        }
        set_cached(cache_key, json.dumps(payload, ensure_ascii=False))
        return payload

    async def _search_library(self, query: str, max_results: int) -> List[SearchResult]:
        from duckduckgo_search import DDGS
        from duckduckgo_search.exceptions import DuckDuckGoSearchException

        # DDGS is synchronous
        def _sync_search() -> List[SearchResult]:
            with DDGS() as ddgs:
                return [
                    SearchResult(
                        title=str(r.get("title", "")),
                        url=str(r.get("href", "")),
                        snippet=str(r.get("body", "")),
                    )
                    for r in ddgs.text(query, region="br-pt", max_results=max_results)
                ]

        try:
            return await asyncio.to_thread(_sync_search)
        except DuckDuckGoSearchException as exc:
            LOGGER.warning("DuckDuckGo library search failed (%s), trying HTML endpoint", exc)
            return []

    async def _search_html(self, query: str, max_results: int) -> List[SearchResult]:
        async with httpx.AsyncClient(timeout=15.0, follow_redirects=True) as client:
            resp = await client.post("https://html.duckduckgo.com/html/", data={"q": query})
            resp.raise_for_status()
            text = resp.text

        results: List[SearchResult] = []
        for match in _ANCHOR_RE.finditer(text):
            if len(results) >= max_results:
                break
            title = _TAG_RE.sub("", match.group("title") or "").strip()
            href = (match.group("href") or "").strip()
            snippet = ""
            sm = _SNIPPET_RE.search(text[match.end() : match.end() + 800])
            if sm:
                snippet = _TAG_RE.sub("", sm.group("snippet") or "").strip()
            if title and href:
                results.append(SearchResult(title=title, url=href, snippet=snippet))
        return results
