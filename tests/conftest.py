from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from tweet_embed.fetcher import TweetCache


def build_payload(
    tweet_id: str = "20",
    text: str = "just setting up my twttr",
    name: str = "jack",
    screen_name: str = "jack",
    favorite_count: int = 1500,
    **extra: Any,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "__typename": "Tweet",
        "id_str": tweet_id,
        "text": text,
        "created_at": "2006-03-21T20:50:14.000Z",
        "favorite_count": favorite_count,
        "conversation_count": 12,
        "user": {
            "name": name,
            "screen_name": screen_name,
            "profile_image_url_https": f"https://pbs.twimg.com/profile_images/{screen_name}_normal.jpg",
            "is_blue_verified": False,
        },
    }
    payload.update(extra)
    return payload


def build_response(
    status_code: int,
    payload: Optional[Any] = None,
    body: bytes = b"",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = json.dumps(payload).encode("utf-8") if payload is not None else body
    resp.encoding = "utf-8"
    return resp


class FakeClient:
    """Stands in for SyndicationClient; unknown ids fail like a dead host."""

    def __init__(
        self,
        payloads: Dict[str, Dict[str, Any]],
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.payloads = payloads
        self.delays = delays or {}
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch_payload(self, tweet_id: str) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(tweet_id)
        delay = self.delays.get(tweet_id)
        if delay:
            time.sleep(delay)
        if tweet_id not in self.payloads:
            raise requests.ConnectionError(f"unreachable for {tweet_id}")
        return self.payloads[tweet_id]


class FakeSession:
    """Records GET calls and replays a canned response or exception."""

    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Dict[str, str], timeout: float) -> requests.Response:
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def make_payload() -> Callable[..., Dict[str, Any]]:
    return build_payload


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    return build_response


@pytest.fixture
def fake_session() -> Callable[[Any], FakeSession]:
    return FakeSession


@pytest.fixture
def fake_client() -> Callable[..., FakeClient]:
    return FakeClient


@pytest.fixture
def cache_with() -> Callable[[FakeClient], TweetCache]:
    def _build(client: FakeClient) -> TweetCache:
        return TweetCache(client)  # type: ignore[arg-type]

    return _build
