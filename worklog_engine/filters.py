"""Tag and description filters for log entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field


def _compile(patterns) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(pattern) if isinstance(pattern, str) else pattern for pattern in patterns or ())


@dataclass(frozen=True)
class TagFilter:
    """Select entries by tags and description patterns.

    ``all_tags`` must all be present, at least one of ``some_tags`` must be
    present, none of ``no_tags`` may be. ``untagged`` restricts the selection
    to entries without tags. Every ``patterns`` regex must match the
    description (searched, not anchored); no ``no_patterns`` regex may.
    """

    all_tags: frozenset[str] = frozenset()
    some_tags: frozenset[str] = frozenset()
    no_tags: frozenset[str] = frozenset()
    patterns: tuple = field(default=())
    no_patterns: tuple = field(default=())
    untagged: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "all_tags", frozenset(self.all_tags))
        object.__setattr__(self, "some_tags", frozenset(self.some_tags))
        object.__setattr__(self, "no_tags", frozenset(self.no_tags))
        object.__setattr__(self, "patterns", _compile(self.patterns))
        object.__setattr__(self, "no_patterns", _compile(self.no_patterns))

    @property
    def empty(self) -> bool:
        return not (
            self.all_tags or self.some_tags or self.no_tags or self.patterns or self.no_patterns or self.untagged
        )

    def _text_matches(self, text: str) -> bool:
        if any(not pattern.search(text) for pattern in self.patterns):
            return False
        return not any(pattern.search(text) for pattern in self.no_patterns)

    def matches(self, entry) -> bool:
        tags = entry.tags
        if not tags:
            if not self.untagged and (self.all_tags or self.some_tags):
                return False
        elif self.untagged:
            return False
        else:
            if self.some_tags and not (self.some_tags & tags):
                return False
            if not self.all_tags <= tags:
                return False
            if self.no_tags & tags:
                return False
        return self._text_matches(entry.description)
