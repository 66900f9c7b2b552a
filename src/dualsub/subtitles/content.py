"""Content tree abstraction the change detector observes.

Any front end that shows subtitles (an mpv OSD, a DOM) exposes them as a
small tree of ``ContentNode`` objects and reports ``ContentChange``
notifications. The detector locates the subtitle container with
``ContainerResolver`` and extracts plain text from it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterator

SUBTITLE_SELECTORS = (
    '[data-testid="subtitles-wrapper"]',
    '[data-testid*="subtitles"]',
    '[data-testid*="subtitle"]',
    '[aria-live="polite"]',
    '[role="status"]',
    '[class*="Subtitles"]',
    '[class*="Subtitle"]',
)

_SELECTOR_RE = re.compile(r'^\[(?P<attr>[\w-]+)(?P<op>\*?=)"(?P<value>[^"]*)"\]$')


@dataclass(eq=False)
class ContentNode:
    """A node with attributes, optional text and children."""

    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: list[ContentNode] = field(default_factory=list)
    parent: ContentNode | None = field(default=None, repr=False)
    _detached: bool = field(default=False, repr=False)

    def append(self, child: ContentNode) -> ContentNode:
        child.parent = self
        child._detached = False
        self.children.append(child)
        return child

    def remove(self, child: ContentNode) -> None:
        self.children.remove(child)
        child.parent = None
        child._detached = True

    def clear_children(self) -> None:
        for child in list(self.children):
            self.remove(child)

    def is_attached(self) -> bool:
        """Whether the node is still reachable from an attached root."""
        node: ContentNode | None = self
        while node is not None:
            if node._detached:
                return False
            node = node.parent
        return True

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.remove(self)
        else:
            self._detached = True

    def iter(self) -> Iterator[ContentNode]:
        """Depth-first iteration over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.iter()

    def contains(self, other: ContentNode) -> bool:
        node: ContentNode | None = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def matches(self, selector: str) -> bool:
        """Match a single attribute selector: ``[a="v"]`` or ``[a*="v"]``."""
        match = _SELECTOR_RE.match(selector)
        if not match:
            raise ValueError(f"Unsupported selector: {selector}")
        value = self.attrs.get(match["attr"])
        if value is None:
            return False
        if match["op"] == "=":
            return value == match["value"]
        return match["value"] in value


@dataclass
class ContentChange:
    """A change reported by the front end."""

    node: ContentNode
    added_nodes: bool = False


def extract_text(container: ContentNode) -> str:
    """Join leaf texts with spaces, folding newlines and collapsing whitespace."""
    parts = [node.text for node in container.iter() if not node.children and node.text]
    return " ".join(" ".join(parts).replace("\n", " ").split())


TextExtractor = Callable[[ContentNode], str]


class ContainerResolver:
    """Finds the native subtitle container and caches it while attached.

    Args:
        root: Returns the current root of the content tree.
        selectors: Candidate selectors in priority order.
        own_container: The overlay's own container, never selected.
    """

    def __init__(
        self,
        root: Callable[[], ContentNode | None],
        selectors: tuple[str, ...] = SUBTITLE_SELECTORS,
        own_container: ContentNode | None = None,
    ) -> None:
        self._root = root
        self.selectors = selectors
        self.own_container = own_container
        self._cached: ContentNode | None = None

    def resolve(self) -> ContentNode | None:
        if self._cached is not None and self._cached.is_attached():
            return self._cached
        self._cached = self._scan()
        return self._cached

    def invalidate(self) -> None:
        self._cached = None

    def _scan(self) -> ContentNode | None:
        root = self._root()
        if root is None:
            return None
        nodes = [node for node in root.iter() if not self._is_own(node)]
        for selector in self.selectors:
            for node in nodes:
                if node.matches(selector):
                    return node
        return None

    def _is_own(self, node: ContentNode) -> bool:
        return self.own_container is not None and self.own_container.contains(node)
