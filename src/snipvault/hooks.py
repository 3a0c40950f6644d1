"""
Minimal hook registry standing in for the host's render pipeline.

Filters transform a value (``apply_filters``), actions produce output
(``do_action``).  Callbacks run by ascending priority, ties in registration
order.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Tuple

__all__ = [
    "HookRegistry",
    "THE_CONTENT",
    "THE_EXCERPT",
    "COMMENT_TEXT",
    "COMMENTS_ARRAY",
    "HEAD",
]

# Hook names used by the render pipeline
THE_CONTENT = "the_content"
THE_EXCERPT = "the_excerpt"
COMMENT_TEXT = "comment_text"
COMMENTS_ARRAY = "comments_array"
HEAD = "head"

DEFAULT_PRIORITY = 10


class HookRegistry:
    def __init__(self) -> None:
        self._filters: DefaultDict[str, List[Tuple[int, int, Callable[[Any], Any]]]] = defaultdict(list)
        self._actions: DefaultDict[str, List[Tuple[int, int, Callable[[], str]]]] = defaultdict(list)
        self._seq = 0

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def add_filter(self, name: str, callback: Callable[[Any], Any], priority: int = DEFAULT_PRIORITY) -> None:
        self._filters[name].append((priority, self._next_seq(), callback))

    def add_action(self, name: str, callback: Callable[[], str], priority: int = DEFAULT_PRIORITY) -> None:
        self._actions[name].append((priority, self._next_seq(), callback))

    def has_filter(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def apply_filters(self, name: str, value: Any) -> Any:
        for _, _, callback in sorted(self._filters.get(name, []), key=lambda e: e[:2]):
            value = callback(value)
        return value

    def do_action(self, name: str) -> List[str]:
        """Run every callback of *name* and collect the non-empty output."""
        output: List[str] = []
        for _, _, callback in sorted(self._actions.get(name, []), key=lambda e: e[:2]):
            result = callback()
            if result:
                output.append(result)
        return output
