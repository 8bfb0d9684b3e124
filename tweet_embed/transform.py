"""Find tweet markers in an HTML tree and replace them with static cards."""

from __future__ import annotations

import asyncio
import logging
from typing import AbstractSet, Iterator, List, Optional, Sequence, Set, Tuple

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from .config import EmbedConfig
from .fetcher import TweetCache
from .models import Found, Outcome, PendingReplacement
from .render import render_fallback, render_tweet
from .utils import extract_tweet_id

logger = logging.getLogger("tweet_embed")

VERBATIM_TAGS = frozenset({"pre", "code", "script", "style"})

RenderedItem = Tuple[PendingReplacement, List[PageElement]]


def _is_text(node: object) -> bool:
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def _iter_scannable(tree: Tag, exclude: AbstractSet[int]) -> Iterator[Tag]:
    """Yield elements in document order, skipping verbatim and excluded subtrees."""
    stack = [tree]
    while stack:
        node = stack.pop()
        if node.name in VERBATIM_TAGS or id(node) in exclude:
            continue
        yield node
        stack.extend(
            child for child in reversed(node.contents) if isinstance(child, Tag)
        )


def parse_fragment(markup: str) -> List[PageElement]:
    """Parse generated markup into nodes ready to be spliced into a tree."""
    fragment = BeautifulSoup(markup, "html.parser")
    return list(fragment.contents)


class TweetEmbedTransformer:
    """Rewrites ``{% twitter URL %}`` markers in a parsed document.

    The transformer can be called directly as a pipeline stage: it takes a
    BeautifulSoup tree and returns the same tree, modified in place.
    """

    def __init__(
        self,
        config: Optional[EmbedConfig] = None,
        cache: Optional[TweetCache] = None,
    ) -> None:
        self.config = config if config is not None else EmbedConfig()
        self.pattern = self.config.compiled_pattern()
        self.cache = cache if cache is not None else TweetCache()

    async def __call__(self, tree: Tag) -> Tag:
        return await self.transform(tree)

    def scan(
        self, tree: Tag, exclude: AbstractSet[int] = frozenset()
    ) -> List[PendingReplacement]:
        """Collect marker occurrences without touching the tree.

        Elements whose ``id()`` is in ``exclude`` are not entered.
        """
        pending: List[PendingReplacement] = []
        for parent in _iter_scannable(tree, exclude):
            pending.extend(self._scan_children(parent))
        return pending

    def _scan_children(self, parent: Tag) -> List[PendingReplacement]:
        found: List[PendingReplacement] = []
        children = parent.contents
        index = 0
        while index < len(children):
            child = children[index]
            if not _is_text(child):
                index += 1
                continue

            inline = self._match_inline(parent, index, str(child))
            if inline:
                found.extend(inline)
                index += 1
                continue

            split = self._match_split(parent, index)
            if split is not None:
                found.append(split)
                index += 3
                continue
            index += 1
        return found

    def _match_inline(
        self, parent: Tag, index: int, text: str
    ) -> List[PendingReplacement]:
        matches: List[PendingReplacement] = []
        for match in self.pattern.finditer(text):
            url = match.group(1)
            tweet_id = extract_tweet_id(url) if url else None
            if not tweet_id:
                continue
            matches.append(
                PendingReplacement(
                    parent=parent,
                    start=index,
                    end=index,
                    url=url,
                    tweet_id=tweet_id,
                    head=match.start(),
                    tail=match.end(),
                )
            )
        return matches

    def _match_split(self, parent: Tag, index: int) -> Optional[PendingReplacement]:
        """Match ``text("{% twitter ") + <a href=URL> + text(" %}")``."""
        children = parent.contents
        if index + 2 >= len(children):
            return None
        opening, link, closing = children[index : index + 3]
        if not (_is_text(closing) and isinstance(link, Tag) and link.name == "a"):
            return None

        open_literal = self.config.open_literal
        close_literal = self.config.close_literal
        before = str(opening)
        head = before.rfind(open_literal)
        if head == -1 or before[head + len(open_literal):].strip():
            return None
        after = str(closing)
        stripped = after.lstrip()
        if not stripped.startswith(close_literal):
            return None

        href = link.get("href")
        if not href:
            return None
        url = str(href)
        tweet_id = extract_tweet_id(url)
        if not tweet_id:
            return None
        return PendingReplacement(
            parent=parent,
            start=index,
            end=index + 2,
            url=url,
            tweet_id=tweet_id,
            head=head,
            tail=len(after) - len(stripped) + len(close_literal),
        )

    def render_outcome(self, item: PendingReplacement, outcome: Outcome) -> str:
        if isinstance(outcome, Found):
            return render_tweet(outcome.tweet, item.url, self.config.renderer_theme())
        return render_fallback(item.url)

    async def resolve_all(self, pending: Sequence[PendingReplacement]) -> List[Outcome]:
        """Resolve every pending id concurrently, one lookup per distinct id."""
        tweet_ids = list(dict.fromkeys(item.tweet_id for item in pending))
        outcomes = await asyncio.gather(
            *(self.cache.resolve(tweet_id) for tweet_id in tweet_ids)
        )
        by_id = dict(zip(tweet_ids, outcomes))
        return [by_id[item.tweet_id] for item in pending]

    async def transform(self, tree: Tag) -> Tag:
        """Replace every marker in ``tree`` with a rendered card.

        Text left over from one pass (two split markers sharing a middle text
        node) is rescanned until no markers remain. Inserted cards are never
        rescanned.
        """
        cards: Set[int] = set()
        while True:
            pending = self.scan(tree, cards)
            if not pending:
                return tree
            logger.info("Embedding %d tweet marker(s)", len(pending))

            outcomes = await self.resolve_all(pending)
            rendered: List[RenderedItem] = [
                (item, parse_fragment(self.render_outcome(item, outcome)))
                for item, outcome in zip(pending, outcomes)
            ]
            for group in reversed(_group_by_node(rendered)):
                _splice(group)
            cards.update(
                id(node)
                for _, nodes in rendered
                for node in nodes
                if isinstance(node, Tag)
            )


def _group_by_node(rendered: List[RenderedItem]) -> List[List[RenderedItem]]:
    """Group consecutive inline matches that live in the same text node."""
    groups: List[List[RenderedItem]] = []
    for entry in rendered:
        item = entry[0]
        if groups:
            previous = groups[-1][-1][0]
            if (
                item.single_node
                and previous.single_node
                and previous.parent is item.parent
                and previous.start == item.start
            ):
                groups[-1].append(entry)
                continue
        groups.append([entry])
    return groups


def _splice(group: List[RenderedItem]) -> None:
    """Replace the child range of one group with text and card nodes."""
    first = group[0][0]
    last = group[-1][0]
    parent = first.parent
    start_text = str(parent.contents[first.start])
    end_text = str(parent.contents[last.end])

    replacements: List[PageElement] = []
    if start_text[: first.head]:
        replacements.append(NavigableString(start_text[: first.head]))
    previous: Optional[PendingReplacement] = None
    for item, nodes in group:
        if previous is not None:
            between = start_text[previous.tail : item.head]
            if between:
                replacements.append(NavigableString(between))
        replacements.extend(nodes)
        previous = item
    if end_text[last.tail :]:
        replacements.append(NavigableString(end_text[last.tail :]))

    for node in parent.contents[first.start : last.end + 1]:
        node.extract()
    for offset, node in enumerate(replacements):
        parent.insert(first.start + offset, node)


async def embed_tweets(
    html: str,
    config: Optional[EmbedConfig] = None,
    cache: Optional[TweetCache] = None,
) -> str:
    """Parse ``html``, embed every tweet marker and serialize the result."""
    soup = BeautifulSoup(html, "html.parser")
    await TweetEmbedTransformer(config, cache).transform(soup)
    return soup.decode()
