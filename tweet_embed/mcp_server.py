"""MCP server exposing tweet embedding tools."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from .config import EmbedConfig
from .fetcher import TweetCache
from .models import Found
from .render import render_fallback, render_tweet
from .transform import embed_tweets
from .utils import extract_tweet_id

logger = logging.getLogger("tweet_embed.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="tweet-embed")

# Shared for the lifetime of the server process.
_cache = TweetCache()


@mcp.tool()
async def embed_html(html: str, theme: str = "light") -> str:
    """Replace {% twitter URL %} markers in an HTML string with static tweet cards."""
    return await embed_tweets(html, EmbedConfig(theme=theme), _cache)


@mcp.tool()
async def tweet_card(url: str, theme: str = "light") -> str:
    """Return the static card markup for a single tweet URL."""
    tweet_id = extract_tweet_id(url)
    if tweet_id is None:
        raise ValueError(f"No status id found in {url}")
    outcome = await _cache.resolve(tweet_id)
    if isinstance(outcome, Found):
        return render_tweet(outcome.tweet, url, EmbedConfig(theme=theme).renderer_theme())
    return render_fallback(url)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
