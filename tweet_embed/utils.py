"""Utility helpers for tweet URL handling."""

from __future__ import annotations

import re
from typing import Optional

STATUS_PATTERN = re.compile(r"status/(\d+)")


def extract_tweet_id(url: str) -> Optional[str]:
    """Return the numeric status id from a tweet URL, or ``None``."""
    match = STATUS_PATTERN.search(url)
    return match.group(1) if match else None
