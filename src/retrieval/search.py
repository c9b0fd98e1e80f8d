"""Web search with institutional domain prioritization.

Queries go to the Tavily search API, restricted toward official Dartmouth
sites. Hits from trusted domains get a score boost, and the overall
confidence reflects how many trusted sources came back.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Literal
from urllib.parse import urlparse

import httpx

from src.config import settings

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
PLACEHOLDER_API_KEY = "tvly-YOUR_TAVILY_API_KEY_HERE"

SITE_RESTRICTION = "site:dartmouth.edu OR site:students.dartmouth.edu"
NOISE_DOMAINS = ("reddit.com", "facebook.com", "instagram.com", "twitter.com")

TRUSTED_DOMAINS = (
    "students.dartmouth.edu",
    "dartmouth.edu",
    "admissions.dartmouth.edu",
    "engineering.dartmouth.edu",
    "dali.dartmouth.edu",
    "dickey.dartmouth.edu",
    "rockefeller.dartmouth.edu",
    "hop.dartmouth.edu",
    "wisp.dartmouth.edu",
    "ugar.dartmouth.edu",
    "tucker.dartmouth.edu",
)

# Ranking policy. Tunable, not derived.
TRUSTED_BOOST = 1.5
BASE_TRUSTED_CONFIDENCE = 0.6
PER_TRUSTED_CONFIDENCE = 0.1
MAX_TRUSTED_CONFIDENCE = 0.9
MAX_UNTRUSTED_CONFIDENCE = 0.5

SearchDepth = Literal["basic", "advanced"]


class SearchError(Exception):
    """The search call failed in transport or returned something unusable."""


class SearchConfigurationError(SearchError):
    """Search cannot run because it is not configured."""


@dataclass
class SearchResult:
    title: str
    url: str
    content: str
    score: float
    source_domain: str
    is_official: bool
    published_date: str | None = None


@dataclass
class SearchResponse:
    query: str
    confidence: float
    results: list[SearchResult] = field(default_factory=list)
    answer: str | None = None


def is_search_configured() -> bool:
    """Check whether a real Tavily key is set."""
    key = settings.tavily_api_key
    return bool(key) and key != PLACEHOLDER_API_KEY


def extract_domain(url: str) -> str:
    """Return the lower-cased hostname of *url*.

    Falls back to naive string splitting when the URL does not parse, so
    a hit is never dropped because of a bad URL.
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    if hostname:
        return hostname.lower()
    logger.warning("Invalid URL in search hit: %s", url)
    return re.sub(r"^https?://", "", url, flags=re.IGNORECASE).split("/")[0].lower()


def is_trusted_domain(domain: str) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in TRUSTED_DOMAINS)


def _score_hit(hit: dict) -> SearchResult:
    url = str(hit.get("url") or "")
    domain = extract_domain(url)
    trusted = is_trusted_domain(domain)
    score = float(hit.get("score") or 0.0)
    if trusted:
        score *= TRUSTED_BOOST
    return SearchResult(
        title=hit.get("title", "") or "",
        url=url,
        content=hit.get("content", "") or "",
        score=min(score, 1.0),
        source_domain=domain,
        is_official=trusted,
        published_date=hit.get("published_date"),
    )


def rank_results(hits: list[dict]) -> tuple[list[SearchResult], float]:
    """Score, sort and compute confidence for raw search hits.

    Returns all ranked results (untruncated) and the overall confidence.
    """
    ranked = sorted((_score_hit(h) for h in hits), key=lambda r: r.score, reverse=True)

    trusted_count = sum(1 for r in ranked if r.is_official)
    if trusted_count:
        confidence = min(
            MAX_TRUSTED_CONFIDENCE,
            BASE_TRUSTED_CONFIDENCE + PER_TRUSTED_CONFIDENCE * trusted_count,
        )
    else:
        confidence = min(MAX_UNTRUSTED_CONFIDENCE, ranked[0].score if ranked else 0.0)
    return ranked, confidence


async def search(
    query: str,
    *,
    include_answer: bool = True,
    max_results: int = 5,
    depth: SearchDepth = "basic",
    include_raw_content: bool = False,
    exclude_domains: list[str] | tuple[str, ...] = (),
) -> SearchResponse:
    """Search official sources for *query*.

    Raises:
        SearchConfigurationError: No Tavily key is configured.
        SearchError: The request failed or the response was malformed.
    """
    api_key = settings.tavily_api_key
    if not api_key:
        raise SearchConfigurationError("TAVILY_API_KEY is not configured.")

    enhanced_query = f"{query} {SITE_RESTRICTION}"
    payload = {
        "query": enhanced_query,
        "search_depth": depth,
        "max_results": max_results,
        "include_answer": include_answer,
        "include_raw_content": include_raw_content,
        "exclude_domains": [*exclude_domains, *NOISE_DOMAINS],
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    logger.info("Search query: %s (depth=%s, max=%d)", enhanced_query, depth, max_results)

    try:
        async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
            resp = await client.post(TAVILY_SEARCH_URL, headers=headers, json=payload)
        if resp.status_code != 200:
            msg = f"Tavily API returned {resp.status_code}: {resp.text[:200]}"
            raise SearchError(msg)
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.exception("Tavily search request failed")
        raise SearchError(f"Search request failed: {exc}") from exc
    except ValueError as exc:
        raise SearchError(f"Search returned invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise SearchError("Search returned an unexpected payload")

    hits = data.get("results") or []
    if not isinstance(hits, list) or not all(isinstance(h, dict) for h in hits):
        raise SearchError("Search returned malformed results")
    try:
        ranked, confidence = rank_results(hits)
    except (TypeError, ValueError) as exc:
        raise SearchError(f"Search returned malformed results: {exc}") from exc
    logger.info(
        "Search returned %d hits (%d official), confidence %.2f",
        len(ranked), sum(1 for r in ranked if r.is_official), confidence,
    )

    return SearchResponse(
        query=enhanced_query,
        confidence=confidence,
        results=ranked[:max_results],
        answer=data.get("answer"),
    )


# -- Specialized lookups -----------------------------------------------------


async def search_opportunity_info(name: str, context: str | None = None) -> SearchResponse:
    """Look up funding and application details for a named opportunity."""
    if context:
        query = f'"{name}" {context} opportunities funding application'
    else:
        query = f'"{name}" Dartmouth opportunities funding application deadlines'
    return await search(query, max_results=3, depth="advanced", include_answer=True)


async def search_current_deadlines(program: str, today: date | None = None) -> SearchResponse:
    """Look up this cycle's application deadline for a program."""
    year = (today or date.today()).year
    query = f'"{program}" Dartmouth application deadline {year} {year + 1}'
    return await search(query, max_results=3, depth="advanced", include_answer=True)


async def search_contact_info(department: str) -> SearchResponse:
    """Look up faculty or coordinator contacts for a program or department."""
    query = f"{department} Dartmouth contact information email faculty staff coordinator"
    return await search(query, max_results=3, include_answer=True)
