"""Configuration objects and constants for tweet embedding."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Union

DEFAULT_PATTERN = (
    r"{% twitter (https?://(?:twitter\.com|x\.com)/\w+/status/\d+) %}"
)
DEFAULT_OPEN_LITERAL = "{% twitter"
DEFAULT_CLOSE_LITERAL = "%}"

THEMES = ("light", "dark", "auto")


@dataclass
class EmbedConfig:
    """Settings that control marker matching, fetching and card rendering."""

    theme: str = "light"
    include_styles: bool = True
    pattern: Union[str, Pattern[str]] = DEFAULT_PATTERN
    open_literal: str = DEFAULT_OPEN_LITERAL
    close_literal: str = DEFAULT_CLOSE_LITERAL
    lang: str = "en"
    request_timeout: float = 15.0

    def __post_init__(self) -> None:
        if self.theme not in THEMES:
            raise ValueError(
                f"Unknown theme {self.theme!r}; expected one of {', '.join(THEMES)}"
            )
        self.compiled_pattern()

    def compiled_pattern(self) -> Pattern[str]:
        """Return the marker regex, requiring exactly one capture group."""
        pattern = self.pattern
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        if pattern.groups != 1:
            raise ValueError(
                "Marker pattern must have exactly one capture group for the "
                f"tweet URL (found {pattern.groups}): {pattern.pattern!r}"
            )
        return pattern

    def renderer_theme(self) -> str:
        """Resolve ``auto`` to the palette used when nothing else decides."""
        return "dark" if self.theme == "dark" else "light"
