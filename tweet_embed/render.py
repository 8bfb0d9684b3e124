"""Static HTML tweet cards with inline styles."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from .models import TweetData

FONT_STACK = (
    "-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Helvetica,Arial,sans-serif"
)
LINK_ATTRS = 'target="_blank" rel="noopener noreferrer"'
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

ICON_VERIFIED = (
    '<svg viewBox="0 0 22 22" aria-label="Verified account" '
    'style="width:18px;height:18px;fill:rgb(29,155,240);margin-left:2px;vertical-align:text-bottom">'
    '<path d="M20.396 11c-.018-.646-.215-1.275-.57-1.816-.354-.54-.852-.972-1.438-1.246.223-.607.27-1.264.14-1.897-.131-.634-.437-1.218-.882-1.687-.47-.445-1.053-.75-1.687-.882-.633-.13-1.29-.083-1.897.14-.273-.587-.704-1.086-1.245-1.44S11.647 1.62 11 1.604c-.646.017-1.273.213-1.813.568s-.969.854-1.24 1.44c-.608-.223-1.267-.272-1.902-.14-.635.13-1.22.436-1.69.882-.445.47-.749 1.055-.878 1.688-.13.633-.08 1.29.144 1.896-.587.274-1.087.705-1.443 1.245-.356.54-.555 1.17-.574 1.817.02.647.218 1.276.574 1.817.356.54.856.972 1.443 1.245-.224.606-.274 1.263-.144 1.896.13.634.433 1.218.877 1.688.47.443 1.054.747 1.687.878.633.132 1.29.084 1.897-.136.274.586.705 1.084 1.246 1.439.54.354 1.17.551 1.816.569.647-.016 1.276-.213 1.817-.567s.972-.854 1.245-1.44c.604.239 1.266.296 1.903.164.636-.132 1.22-.447 1.68-.907.46-.46.776-1.044.908-1.681s.075-1.299-.165-1.903c.586-.274 1.084-.705 1.439-1.246.354-.54.551-1.17.569-1.816zM9.662 14.85l-3.429-3.428 1.293-1.302 2.072 2.072 4.4-4.794 1.347 1.246z"/>'
    "</svg>"
)
ICON_X_LOGO = (
    '<svg viewBox="0 0 24 24" aria-hidden="true" style="width:23.75px;height:23.75px;fill:currentColor">'
    '<path d="M18.244 2.25h3.308l-7.227 8.26 8.502 11.24H16.17l-5.214-6.817L4.99 21.75H1.68l7.73-8.835L1.254 2.25H8.08l4.713 6.231zm-1.161 17.52h1.833L7.084 4.126H5.117z"/>'
    "</svg>"
)
ICON_LIKE = (
    '<svg viewBox="0 0 24 24" aria-hidden="true" style="width:1.25em;height:1.25em;fill:currentColor">'
    '<path d="M20.884 13.19c-1.351 2.48-4.001 5.12-8.379 7.67l-.503.3-.504-.3c-4.379-2.55-7.029-5.19-8.382-7.67-1.36-2.5-1.41-4.86-.514-6.67.887-1.79 2.647-2.91 4.601-3.01 1.651-.09 3.368.56 4.798 2.01 1.429-1.45 3.146-2.1 4.796-2.01 1.954.1 3.714 1.22 4.601 3.01.896 1.81.846 4.17-.514 6.67z"/>'
    "</svg>"
)
ICON_REPLY = (
    '<svg viewBox="0 0 24 24" aria-hidden="true" style="width:1.25em;height:1.25em;fill:currentColor">'
    '<path d="M1.751 10c0-4.42 3.584-8 8.005-8h4.366c4.49 0 8.129 3.64 8.129 8.13 0 2.96-1.607 5.68-4.196 7.11l-8.054 4.46v-3.69h-.067c-4.49.1-8.183-3.51-8.183-8.01z"/>'
    "</svg>"
)


@dataclass(frozen=True)
class Palette:
    """Colors applied uniformly across a card."""

    bg: str
    border: str
    text: str
    text_secondary: str
    link: str
    red: str
    blue: str


LIGHT = Palette(
    bg="#fff",
    border="rgb(207,217,222)",
    text="rgb(15,20,25)",
    text_secondary="rgb(83,100,113)",
    link="rgb(29,155,240)",
    red="rgb(249,24,128)",
    blue="rgb(29,155,240)",
)
DARK = Palette(
    bg="rgb(21,32,43)",
    border="rgb(66,83,100)",
    text="rgb(247,249,249)",
    text_secondary="rgb(139,152,165)",
    link="rgb(107,201,251)",
    red="rgb(249,24,128)",
    blue="rgb(29,155,240)",
)


def get_colors(theme: str) -> Palette:
    return DARK if theme == "dark" else LIGHT


def escape_html(text: str) -> str:
    """Escape the five characters that are unsafe in text and attributes."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


def format_date(value: str) -> str:
    """Render an ISO timestamp as ``12:34 PM · Apr 20, 2023`` in UTC."""
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    parsed = parsed.astimezone(dt.timezone.utc)
    hour = parsed.hour % 12 or 12
    meridiem = "AM" if parsed.hour < 12 else "PM"
    return (
        f"{hour}:{parsed.minute:02d} {meridiem} · "
        f"{_MONTHS[parsed.month - 1]} {parsed.day}, {parsed.year}"
    )


def _abbreviate(num: int, unit: int, suffix: str) -> str:
    scaled = Decimal(num / unit).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    text = str(scaled)
    if text.endswith(".0"):
        text = text[:-2]
    return text + suffix


def format_number(num: int) -> str:
    """Abbreviate counters: 950, 1.5K, 1K, 2M."""
    if num >= 1_000_000:
        return _abbreviate(num, 1_000_000, "M")
    if num >= 1_000:
        return _abbreviate(num, 1_000, "K")
    return str(num)


def process_text(tweet: TweetData, link_color: str) -> str:
    """Escape the tweet body, link URL entities and convert newlines."""
    text = escape_html(tweet.text)
    for entity in tweet.urls:
        anchor = (
            f'<a href="{entity.expanded_url}" {LINK_ATTRS} '
            f'style="color:{link_color};text-decoration:none">'
            f"{escape_html(entity.display_url)}</a>"
        )
        text = text.replace(escape_html(entity.url), anchor, 1)
    return text.replace("\n", "<br>")


def _render_photos(tweet: TweetData, colors: Palette) -> str:
    if not tweet.photos:
        return ""
    grid_style = (
        "" if len(tweet.photos) == 1
        else "display:grid;grid-template-columns:1fr 1fr;gap:2px;"
    )
    parts: List[str] = [
        f'<div style="{grid_style}margin-top:12px;border-radius:12px;'
        f'overflow:hidden;border:1px solid {colors.border}">'
    ]
    for photo in tweet.photos:
        parts.append(
            f'<img src="{photo.url}" alt="" loading="lazy" '
            'style="width:100%;height:auto;display:block;object-fit:cover"/>'
        )
    parts.append("</div>")
    return "".join(parts)


def _card_open(colors: Palette) -> str:
    return (
        '<div style="width:100%;min-width:250px;max-width:550px;margin:1.5rem auto;'
        f"font-family:{FONT_STACK};color:{colors.text};background:{colors.bg};"
        f'border:1px solid {colors.border};border-radius:12px;overflow:hidden">'
    )


def render_tweet(tweet: TweetData, tweet_url: str, theme: str = "light") -> str:
    """Render a resolved tweet as a self-contained card."""
    c = get_colors(theme)
    user = tweet.user
    profile_url = f"https://twitter.com/{user.screen_name}"
    avatar_url = user.profile_image_url_https.replace("_normal", "_bigger")
    name = escape_html(user.name)
    verified_badge = ICON_VERIFIED if user.is_blue_verified else ""
    action_icon_style = (
        "display:flex;align-items:center;justify-content:center;"
        "width:calc(1.25em + 12px);height:calc(1.25em + 12px);"
        "margin-left:-4px;border-radius:9999px"
    )

    return f"""{_card_open(c)}
<article style="padding:12px 16px">
<header style="display:flex;padding-bottom:12px;line-height:20px;font-size:15px">
<a href="{profile_url}" {LINK_ATTRS} style="position:relative;height:48px;width:48px;flex-shrink:0">
<div style="height:100%;width:100%;position:absolute;overflow:hidden;border-radius:9999px">
<img src="{avatar_url}" alt="{name}" width="48" height="48" style="width:100%;height:100%"/>
</div>
</a>
<div style="display:flex;flex-direction:column;justify-content:center;margin:0 8px;max-width:calc(100% - 84px)">
<a href="{profile_url}" {LINK_ATTRS} style="text-decoration:none;color:inherit;display:flex;align-items:center">
<span style="font-weight:700;overflow:hidden;text-overflow:ellipsis;white-space:nowrap">{name}</span>{verified_badge}
</a>
<a href="{profile_url}" {LINK_ATTRS} style="color:{c.text_secondary};text-decoration:none">
<span>@{escape_html(user.screen_name)}</span>
</a>
</div>
<a href="{tweet_url}" {LINK_ATTRS} style="margin-left:auto;color:{c.text}" aria-label="View on X">
{ICON_X_LOGO}
</a>
</header>
<div style="font-size:1.25rem;font-weight:400;line-height:1.5rem;overflow-wrap:break-word;white-space:pre-wrap">{process_text(tweet, c.link)}</div>
{_render_photos(tweet, c)}
<div style="display:flex;align-items:center;color:{c.text_secondary};margin-top:4px">
<a href="{tweet_url}" {LINK_ATTRS} style="color:inherit;text-decoration:none;font-size:15px;line-height:20px">
<time datetime="{escape_html(tweet.created_at)}">{escape_html(format_date(tweet.created_at))}</time>
</a>
</div>
<div style="display:flex;align-items:center;color:{c.text_secondary};padding-top:4px;margin-top:4px;border-top:1px solid {c.border};font-size:14px;font-weight:700">
<a href="https://twitter.com/intent/like?tweet_id={tweet.id_str}" {LINK_ATTRS} style="text-decoration:none;color:inherit;display:flex;align-items:center;margin-right:20px">
<div style="color:{c.red};{action_icon_style}">{ICON_LIKE}</div>
<span style="margin-left:4px">{format_number(tweet.favorite_count)}</span>
</a>
<a href="https://twitter.com/intent/tweet?in_reply_to={tweet.id_str}" {LINK_ATTRS} style="text-decoration:none;color:inherit;display:flex;align-items:center">
<div style="color:{c.blue};{action_icon_style}">{ICON_REPLY}</div>
<span style="margin-left:4px">Reply</span>
</a>
</div>
<div style="padding:4px 0">
<a href="{tweet_url}" {LINK_ATTRS} style="text-decoration:none;color:{c.link};display:flex;align-items:center;justify-content:center;min-height:32px;padding:0 16px;border:1px solid {c.border};border-radius:9999px;font-weight:700;font-size:15px;line-height:20px">
Read more on X
</a>
</div>
</article>
</div>"""


def render_fallback(tweet_url: str) -> str:
    """Render the card shown when a tweet cannot be resolved.

    Always uses the light palette.
    """
    c = LIGHT
    return f"""{_card_open(c)}
<article style="padding:12px 16px;text-align:center">
<p style="margin:0 0 12px;color:{c.text_secondary}">This tweet is unavailable</p>
<a href="{tweet_url}" {LINK_ATTRS} style="color:{c.link};text-decoration:none;font-weight:500">View on X →</a>
</article>
</div>"""
