# =============================================================================
# POLYMARKET CLAIM VALIDATOR
# Module: claim_validator/fetcher.py
# Purpose: Resolve an X (Twitter) post URL into plain text for validation
# =============================================================================
#
# DESIGN:
# - Only twitter.com / x.com status URLs are accepted
# - Uses the public FxTwitter API (no auth)
# - Single attempt with a bounded timeout; throttling is surfaced to the
#   caller instead of retried
# - Distinguishable failures: ContentNotFoundError (404),
#   RateLimitedError (429), ContentFetchError (everything else)
#
# API REFERENCE:
# Base URL: https://api.fxtwitter.com
# Endpoint: /<screen_name>/status/<tweet_id>
#
# =============================================================================

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

STATUS_URL_RE = re.compile(r"^https?://(?:www\.|mobile\.)?(?:twitter\.com|x\.com)/([^/?#]+)/status/(\d+)", re.IGNORECASE)
HOST_RE = re.compile(r"^https?://(?:www\.|mobile\.)?(?:twitter\.com|x\.com)/", re.IGNORECASE)

MIN_CONTENT_LENGTH = 20


class ContentFetchError(Exception):
    """Content could not be fetched."""


class ContentNotFoundError(ContentFetchError):
    """The post does not exist or was deleted."""


class RateLimitedError(ContentFetchError):
    """The upstream API throttled the request."""


def _format_count(value: Any) -> str:
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError):
        return "0"


def format_tweet(tweet: Dict[str, Any]) -> str:
    """
    Flatten an FxTwitter tweet object into labelled text.

    Includes author, bio, tweet body, article title/preview,
    quoted tweet and engagement counters when present.
    """
    parts: List[str] = []

    author = tweet.get("author") or {}
    if author.get("name"):
        parts.append(f"Author: {author['name']} (@{author.get('screen_name', '')})")
        if author.get("description"):
            parts.append(f"Bio: {author['description']}")

    text = (tweet.get("text") or "").strip()
    raw = tweet.get("raw_text")
    raw_text = raw.get("text") if isinstance(raw, dict) else None
    if text:
        parts.append(f"\nTweet: {text}")
    elif raw_text:
        parts.append(f"\nTweet: {raw_text}")

    article = tweet.get("article") or {}
    if article.get("title"):
        parts.append(f"\nArticle Title: {article['title']}")
    if article.get("preview_text"):
        parts.append(f"Article Preview: {article['preview_text']}")

    quote = tweet.get("quote")
    if quote:
        quote_author = (quote.get("author") or {}).get("screen_name", "")
        parts.append(f"\nQuoted Tweet (@{quote_author}): {quote.get('text', '')}")

    if tweet.get("likes") or tweet.get("retweets"):
        parts.append(
            f"\nEngagement: {_format_count(tweet.get('likes'))} likes, "
            f"{_format_count(tweet.get('retweets'))} retweets, "
            f"{_format_count(tweet.get('views'))} views"
        )

    return "\n".join(parts).strip()


class XContentFetcher:
    """
    HTTP client resolving X post URLs through FxTwitter.
    """

    BASE_URL = "https://api.fxtwitter.com"
    DEFAULT_TIMEOUT = 15  # seconds
    USER_AGENT = "PolymarketClaimValidator/1.0"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            base_url: FxTwitter API root
            timeout: Request timeout in seconds
            session: Optional shared requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def parse_status_url(url: str) -> Tuple[str, str]:
        """
        Split a status URL into (screen_name, tweet_id).

        Raises:
            ContentFetchError: If the URL is not an X status URL
        """
        if not HOST_RE.match(url):
            raise ContentFetchError("URL must be from twitter.com or x.com")
        match = STATUS_URL_RE.match(url)
        if not match:
            raise ContentFetchError(f"Cannot parse X URL: {url}")
        return match.group(1), match.group(2)

    def fetch(self, url: str) -> str:
        """
        Fetch and flatten the post behind url.

        Args:
            url: twitter.com or x.com status URL

        Returns:
            Labelled plain text of the post

        Raises:
            ContentNotFoundError: Post missing or deleted
            RateLimitedError: Upstream throttling
            ContentFetchError: Any other failure
        """
        screen_name, tweet_id = self.parse_status_url(url)
        api_url = f"{self.base_url}/{screen_name}/status/{tweet_id}"
        logger.info(f"Fetching X post {screen_name}/{tweet_id}")

        try:
            response = self.session.get(
                api_url,
                timeout=self.timeout,
                headers={
                    "User-Agent": self.USER_AGENT,
                    "Accept": "application/json",
                },
            )
        except requests.exceptions.Timeout:
            raise ContentFetchError(f"Could not fetch X post: timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise ContentFetchError(f"Could not fetch X post: {e}")

        if response.status_code == 404:
            raise ContentNotFoundError("Tweet not found or deleted")
        if response.status_code == 429:
            raise RateLimitedError("Rate limited - please try again later")
        if not response.ok:
            raise ContentFetchError(f"Could not fetch X post: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ContentFetchError(f"Could not fetch X post: invalid JSON ({e})")

        if not isinstance(data, dict) or data.get("code") != 200 or not data.get("tweet"):
            message = data.get("message", "Unknown error") if isinstance(data, dict) else "Unknown error"
            raise ContentFetchError(f"FxTwitter API error: {message}")

        content = format_tweet(data["tweet"])
        if len(content) < MIN_CONTENT_LENGTH:
            raise ContentFetchError("Tweet content too short or empty")

        logger.debug(f"Fetched {len(content)} chars for {screen_name}/{tweet_id}")
        return content
