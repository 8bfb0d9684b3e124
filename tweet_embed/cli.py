"""Command-line entry point for embedding tweets into HTML files."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import DEFAULT_PATTERN, THEMES, EmbedConfig
from .fetcher import SyndicationClient, TweetCache
from .models import Found
from .render import render_fallback, render_tweet
from .transform import embed_tweets
from .utils import extract_tweet_id

logger = logging.getLogger("tweet_embed.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("embed", *argv)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--theme",
        choices=THEMES,
        default="light",
        help="Card palette ('auto' renders the light palette)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=15.0,
        help="HTTP timeout in seconds for each tweet lookup",
    )
    parser.add_argument(
        "--lang",
        default="en",
        help="Language hint sent to the syndication endpoint",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_embed_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("paths", nargs="+", type=Path, help="HTML files to rewrite")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for rewritten files (default: rewrite in place)",
    )
    parser.add_argument(
        "--pattern",
        default=DEFAULT_PATTERN,
        help="Marker regex with exactly one capture group for the tweet URL",
    )
    _add_common_arguments(parser)


def _add_card_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="Tweet URL, e.g. https://x.com/jack/status/20")
    _add_common_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replace {% twitter URL %} markers in HTML with static tweet cards.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    embed_parser = subparsers.add_parser(
        "embed", help="Rewrite tweet markers in HTML files"
    )
    _add_embed_arguments(embed_parser)

    card_parser = subparsers.add_parser(
        "card", help="Fetch one tweet and print its card markup"
    )
    _add_card_arguments(card_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    args = parser.parse_args(argv)
    if args.command == "embed":
        missing = [str(path) for path in args.paths if not path.is_file()]
        if missing:
            parser.error(f"input file(s) not found: {', '.join(missing)}")
    return args


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_cache(args: argparse.Namespace) -> TweetCache:
    return TweetCache(SyndicationClient(timeout=args.timeout, lang=args.lang))


async def _embed_files(
    paths: List[Path],
    output: Optional[Path],
    config: EmbedConfig,
    cache: TweetCache,
) -> List[Path]:
    """Rewrite each file sequentially, sharing one cache across the run."""
    written: List[Path] = []
    for path in paths:
        html = path.read_text(encoding="utf-8")
        result = await embed_tweets(html, config, cache)
        destination = path if output is None else output / path.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(result, encoding="utf-8")
        logger.info("Saved %s", destination)
        written.append(destination)
    return written


def _run_embed(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    try:
        config = EmbedConfig(
            theme=args.theme,
            pattern=args.pattern,
            lang=args.lang,
            request_timeout=args.timeout,
        )
    except ValueError as exc:
        raise SystemExit(f"error: {exc}") from exc

    cache = _build_cache(args)
    output = args.output.resolve() if args.output else None
    overall_start = time.perf_counter()
    written = asyncio.run(_embed_files(list(args.paths), output, config, cache))
    total_elapsed = time.perf_counter() - overall_start
    logger.info(
        "Finished in %.2fs (%d file(s), %d tweet lookup(s))",
        total_elapsed,
        len(written),
        cache.fetch_count,
    )


def _run_card(args: argparse.Namespace) -> None:
    _configure_logging(args.verbose)
    tweet_id = extract_tweet_id(args.url)
    if tweet_id is None:
        raise SystemExit(f"error: no status id found in {args.url}")

    cache = _build_cache(args)
    outcome = asyncio.run(cache.resolve(tweet_id))
    config = EmbedConfig(theme=args.theme)
    if isinstance(outcome, Found):
        markup = render_tweet(outcome.tweet, args.url, config.renderer_theme())
    else:
        logger.warning("Tweet %s unavailable: %s", tweet_id, outcome.reason)
        markup = render_fallback(args.url)
    sys.stdout.write(markup + "\n")
    sys.stdout.flush()


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "embed":
        _run_embed(args)
    else:
        _run_card(args)


if __name__ == "__main__":
    main()
