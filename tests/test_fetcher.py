from __future__ import annotations

import asyncio
import logging
import math
import re

import pytest
import requests

from tweet_embed.fetcher import (
    FEATURES,
    SYNDICATION_URL,
    SyndicationClient,
    TweetCache,
    float_to_radix,
    get_token,
)
from tweet_embed.models import Found, Unavailable


@pytest.mark.parametrize(
    ("value", "radix", "expected"),
    [
        (0.0, 36, "0"),
        (0.5, 36, "0.i"),
        (0.25, 36, "0.9"),
        (255.0, 16, "ff"),
        (-10.0, 36, "-a"),
        (35.5, 36, "z.i"),
        (1 / 3, 3, "0.1"),
        (0.1, 2, "0.0001100110011001100110011001100110011001100110011001101"),
    ],
)
def test_float_to_radix_matches_javascript(value: float, radix: int, expected: str) -> None:
    assert float_to_radix(value, radix) == expected


def test_get_token_strips_zeros_and_points() -> None:
    tweet_id = "1914845490413494666"
    raw = float_to_radix(float(tweet_id) / 1e15 * math.pi, 36)

    token = get_token(tweet_id)

    assert token == raw.replace(".", "").replace("0", "")
    assert re.fullmatch(r"[1-9a-z]+", token)


def test_get_token_is_stable() -> None:
    assert get_token("20") == get_token("20")
    assert get_token("20") != get_token("21")


@pytest.mark.parametrize(
    ("tweet_id", "expected"),
    [
        ("20", "6dq1a2xwd93"),
        ("1914845490413494666", "4n3nx83kd8c"),
        ("1629307668568633344", "3y6mctgwzxo"),
    ],
)
def test_get_token_matches_javascript_output(tweet_id: str, expected: str) -> None:
    assert get_token(tweet_id) == expected


def test_client_sends_expected_query(fake_session, make_response, make_payload) -> None:
    session = fake_session(make_response(200, make_payload()))
    client = SyndicationClient(session=session, timeout=3.5, lang="de")

    payload = client.fetch_payload("20")

    assert payload["id_str"] == "20"
    call = session.calls[0]
    assert call["url"] == SYNDICATION_URL
    assert call["timeout"] == 3.5
    assert call["params"] == {
        "id": "20",
        "lang": "de",
        "features": FEATURES,
        "token": get_token("20"),
    }


def test_client_raises_http_error_for_non_success(fake_session, make_response) -> None:
    client = SyndicationClient(session=fake_session(make_response(503)))

    with pytest.raises(requests.HTTPError):
        client.fetch_payload("20")


def test_resolve_caches_found_record(fake_session, make_response, make_payload) -> None:
    session = fake_session(make_response(200, make_payload(screen_name="jack")))
    cache = TweetCache(SyndicationClient(session=session))

    first = asyncio.run(cache.resolve("20"))
    second = asyncio.run(cache.resolve("20"))

    assert isinstance(first, Found)
    assert first.tweet.user.screen_name == "jack"
    assert first == second
    assert len(session.calls) == 1
    assert cache.fetch_count == 1
    assert "20" in cache


def test_resolve_negative_caches_http_failure(fake_session, make_response) -> None:
    session = fake_session(make_response(404))
    cache = TweetCache(SyndicationClient(session=session))

    first = asyncio.run(cache.resolve("20"))
    second = asyncio.run(cache.resolve("20"))

    assert first == Unavailable("HTTP 404")
    assert second == first
    assert len(session.calls) == 1


def test_resolve_converts_tombstone_to_unavailable(fake_session, make_response) -> None:
    session = fake_session(make_response(200, {"__typename": "TweetTombstone"}))
    cache = TweetCache(SyndicationClient(session=session))

    outcome = asyncio.run(cache.resolve("20"))

    assert outcome == Unavailable("Tweet unavailable")


def test_resolve_never_raises_on_transport_error(
    fake_session, caplog: pytest.LogCaptureFixture
) -> None:
    session = fake_session(requests.ConnectionError("name resolution failed"))
    cache = TweetCache(SyndicationClient(session=session))

    with caplog.at_level(logging.WARNING, logger="tweet_embed"):
        outcome = asyncio.run(cache.resolve("20"))

    assert isinstance(outcome, Unavailable)
    assert "name resolution failed" in outcome.reason
    assert "Failed to fetch tweet 20" in caplog.text


def test_resolve_handles_empty_body(fake_session, make_response) -> None:
    cache = TweetCache(SyndicationClient(session=fake_session(make_response(200, body=b""))))

    outcome = asyncio.run(cache.resolve("20"))

    assert isinstance(outcome, Unavailable)


def test_resolve_handles_malformed_payload(fake_session, make_response) -> None:
    session = fake_session(make_response(200, {"__typename": "Tweet", "text": "hi"}))
    cache = TweetCache(SyndicationClient(session=session))

    outcome = asyncio.run(cache.resolve("20"))

    assert isinstance(outcome, Unavailable)
    assert outcome.reason.startswith("Malformed payload")


def test_reset_forces_a_new_lookup(fake_client, cache_with, make_payload) -> None:
    client = fake_client({"20": make_payload()})
    cache = cache_with(client)

    asyncio.run(cache.resolve("20"))
    cache.reset()

    assert len(cache) == 0
    asyncio.run(cache.resolve("20"))
    assert client.calls == ["20", "20"]


def test_payload_fields_are_mapped(fake_client, cache_with, make_payload) -> None:
    payload = make_payload(
        entities={
            "urls": [
                {
                    "url": "https://t.co/abc",
                    "expanded_url": "https://example.com/post",
                    "display_url": "example.com/post",
                }
            ]
        },
        photos=[{"url": "https://pbs.twimg.com/media/a.jpg", "width": 10, "height": 20}],
    )
    cache = cache_with(fake_client({"20": payload}))

    outcome = asyncio.run(cache.resolve("20"))

    assert isinstance(outcome, Found)
    tweet = outcome.tweet
    assert tweet.urls[0].expanded_url == "https://example.com/post"
    assert tweet.photos[0].height == 20
    assert tweet.favorite_count == 1500
    assert tweet.conversation_count == 12


@pytest.mark.parametrize(
    "path",
    [("text",), ("created_at",), ("user", "name"), ("user", "screen_name")],
)
def test_resolve_rejects_null_text_fields(
    fake_client, cache_with, make_payload, path
) -> None:
    payload = make_payload()
    target = payload
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = None
    cache = cache_with(fake_client({"20": payload}))

    outcome = asyncio.run(cache.resolve("20"))

    assert isinstance(outcome, Unavailable)
    assert outcome.reason.startswith("Malformed payload")
    assert path[-1] in outcome.reason


def test_cache_keeps_injected_client(fake_client) -> None:
    client = fake_client({})

    assert TweetCache(client).client is client
