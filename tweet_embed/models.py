"""Data models used throughout the embed pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from bs4 import Tag


def _text_field(mapping: Mapping[str, Any], key: str) -> str:
    """Return ``mapping[key]``, raising ``TypeError`` unless it is a string."""
    value = mapping[key]
    if not isinstance(value, str):
        raise TypeError(f"{key!r} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class TweetUser:
    """Author identity shown in the card header."""

    name: str
    screen_name: str
    profile_image_url_https: str
    is_blue_verified: bool = False


@dataclass(frozen=True)
class TweetUrlEntity:
    """Shortened link inside the tweet text and its expanded forms."""

    url: str
    expanded_url: str
    display_url: str


@dataclass(frozen=True)
class TweetPhoto:
    """Photo attached to a tweet."""

    url: str
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class TweetData:
    """Tweet record returned by the syndication endpoint."""

    id_str: str
    text: str
    user: TweetUser
    created_at: str
    favorite_count: int = 0
    conversation_count: Optional[int] = None
    urls: Tuple[TweetUrlEntity, ...] = ()
    photos: Tuple[TweetPhoto, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TweetData":
        """Build a record from the decoded JSON payload.

        Raises ``KeyError`` when required fields are missing and ``TypeError``
        when text fields are not strings.
        """
        user = payload["user"]
        entities: Dict[str, Any] = payload.get("entities") or {}
        return cls(
            id_str=str(payload["id_str"]),
            text=_text_field(payload, "text"),
            user=TweetUser(
                name=_text_field(user, "name"),
                screen_name=_text_field(user, "screen_name"),
                profile_image_url_https=_text_field(user, "profile_image_url_https"),
                is_blue_verified=bool(user.get("is_blue_verified", False)),
            ),
            created_at=_text_field(payload, "created_at"),
            favorite_count=int(payload.get("favorite_count") or 0),
            conversation_count=payload.get("conversation_count"),
            urls=tuple(
                TweetUrlEntity(
                    url=_text_field(entity, "url"),
                    expanded_url=_text_field(entity, "expanded_url"),
                    display_url=_text_field(entity, "display_url"),
                )
                for entity in entities.get("urls") or []
            ),
            photos=tuple(
                TweetPhoto(
                    url=_text_field(photo, "url"),
                    width=int(photo.get("width") or 0),
                    height=int(photo.get("height") or 0),
                )
                for photo in payload.get("photos") or []
            ),
        )


@dataclass(frozen=True)
class Found:
    """Successful resolution."""

    tweet: TweetData


@dataclass(frozen=True)
class Unavailable:
    """Failed resolution with a diagnostic reason."""

    reason: str


Outcome = Union[Found, Unavailable]


@dataclass(frozen=True, eq=False)
class PendingReplacement:
    """One marker occurrence awaiting resolution and tree surgery.

    ``start`` and ``end`` are inclusive child indices in ``parent.contents``.
    ``head`` is the offset in the start text node where the marker begins and
    ``tail`` the offset in the end text node just past the marker.
    """

    parent: Tag
    start: int
    end: int
    url: str
    tweet_id: str
    head: int
    tail: int

    @property
    def single_node(self) -> bool:
        return self.start == self.end
