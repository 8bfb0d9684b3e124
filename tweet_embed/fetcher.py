"""Tweet lookups against the syndication endpoint, memoized per process."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Any, Dict, Optional

import requests

from .models import Found, Outcome, TweetData, Unavailable

logger = logging.getLogger("tweet_embed")

SYNDICATION_URL = "https://cdn.syndication.twimg.com/tweet-result"
TOMBSTONE_TYPENAME = "TweetTombstone"
FEATURES = ";".join(
    [
        "tfw_timeline_list:",
        "tfw_follower_count_sunset:true",
        "tfw_tweet_edit_backend:on",
        "tfw_refsrc_session:on",
        "tfw_fosnr_soft_interventions_enabled:on",
        "tfw_show_birdwatch_pivots_enabled:on",
        "tfw_show_business_verified_badge:on",
        "tfw_duplicate_scribes_to_settings:on",
        "tfw_use_profile_image_shape_enabled:on",
        "tfw_show_blue_verified_badge:on",
        "tfw_legacy_timeline_sunset:true",
        "tfw_show_gov_verified_badge:on",
        "tfw_show_business_affiliate_badge:on",
        "tfw_tweet_edit_frontend:on",
    ]
)

_RADIX_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_TOKEN_STRIP = re.compile(r"(0+|\.)")
_MAX_SAFE_FLOAT = 2.0**53


def float_to_radix(value: float, radix: int) -> str:
    """Format a float in ``radix`` exactly as JavaScript engines do.

    Fraction digits are produced only up to the precision of the input and
    rounded half-to-even, matching ``Number.prototype.toString(radix)``.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"

    negative = value < 0
    if negative:
        value = -value

    integer = float(math.floor(value))
    fraction = value - integer
    delta = 0.5 * (math.nextafter(value, math.inf) - value)
    delta = max(math.nextafter(0.0, math.inf), delta)

    fraction_digits = []
    if fraction >= delta:
        while True:
            fraction *= radix
            delta *= radix
            digit = int(fraction)
            fraction_digits.append(digit)
            fraction -= digit
            if fraction > 0.5 or (fraction == 0.5 and digit & 1):
                if fraction + delta > 1:
                    # round up, carrying into earlier digits
                    while True:
                        if not fraction_digits:
                            integer += 1
                            break
                        last = fraction_digits.pop()
                        if last + 1 < radix:
                            fraction_digits.append(last + 1)
                            break
                    break
            if fraction < delta:
                break

    integer_digits = []
    while integer / radix >= _MAX_SAFE_FLOAT:
        integer /= radix
        integer_digits.append("0")
    while True:
        remainder = math.fmod(integer, radix)
        integer_digits.append(_RADIX_DIGITS[int(remainder)])
        integer = (integer - remainder) / radix
        if integer <= 0:
            break

    text = "".join(reversed(integer_digits))
    if fraction_digits:
        text += "." + "".join(_RADIX_DIGITS[d] for d in fraction_digits)
    return "-" + text if negative else text


def get_token(tweet_id: str) -> str:
    """Derive the syndication token the endpoint expects for ``tweet_id``."""
    scaled = float(tweet_id) / 1e15 * math.pi
    return _TOKEN_STRIP.sub("", float_to_radix(scaled, 6**2))


class SyndicationClient:
    """Blocking HTTP client for the tweet syndication endpoint."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        lang: str = "en",
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.lang = lang

    def build_params(self, tweet_id: str) -> Dict[str, str]:
        return {
            "id": tweet_id,
            "lang": self.lang,
            "features": FEATURES,
            "token": get_token(tweet_id),
        }

    def fetch_payload(self, tweet_id: str) -> Dict[str, Any]:
        """Return the decoded payload; raise ``requests.HTTPError`` on non-2xx."""
        resp = self.session.get(
            SYNDICATION_URL,
            params=self.build_params(tweet_id),
            timeout=self.timeout,
        )
        if not 200 <= resp.status_code < 300:
            raise requests.HTTPError(f"HTTP {resp.status_code}", response=resp)
        return resp.json()


class TweetCache:
    """Memoizes tweet lookups by id, including failed ones.

    A cached id is never fetched again until :meth:`reset` is called.
    """

    def __init__(self, client: Optional[SyndicationClient] = None) -> None:
        self.client = client if client is not None else SyndicationClient()
        self.fetch_count = 0
        self._entries: Dict[str, Outcome] = {}

    def __contains__(self, tweet_id: object) -> bool:
        return tweet_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, tweet_id: str) -> Optional[Outcome]:
        return self._entries.get(tweet_id)

    def reset(self) -> None:
        self._entries.clear()
        self.fetch_count = 0

    async def resolve(self, tweet_id: str) -> Outcome:
        """Return the cached outcome for ``tweet_id``, fetching it on a miss."""
        cached = self._entries.get(tweet_id)
        if cached is not None:
            logger.debug("Cache hit for tweet %s", tweet_id)
            return cached
        outcome = await self._fetch(tweet_id)
        self._entries[tweet_id] = outcome
        return outcome

    async def _fetch(self, tweet_id: str) -> Outcome:
        self.fetch_count += 1
        logger.debug("Fetching tweet %s", tweet_id)
        try:
            payload = await asyncio.to_thread(self.client.fetch_payload, tweet_id)
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "error"
            reason = f"HTTP {status}"
            logger.warning("Failed to fetch tweet %s: %s", tweet_id, reason)
            return Unavailable(reason)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Failed to fetch tweet %s: %s", tweet_id, exc)
            return Unavailable(str(exc) or exc.__class__.__name__)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error fetching tweet %s", tweet_id)
            return Unavailable(str(exc) or exc.__class__.__name__)

        if not isinstance(payload, dict):
            logger.warning("Unexpected payload for tweet %s", tweet_id)
            return Unavailable("Unexpected payload")
        if payload.get("__typename") == TOMBSTONE_TYPENAME:
            logger.warning("Tweet %s is unavailable", tweet_id)
            return Unavailable("Tweet unavailable")
        try:
            tweet = TweetData.from_payload(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed payload for tweet %s: %r", tweet_id, exc)
            return Unavailable(f"Malformed payload: {exc!r}")
        return Found(tweet)
