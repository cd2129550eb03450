"""
Script discovery: finds <script src> references in a page
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from mapcheck.errors import UrlResolutionError
from mapcheck.urls import join_url

logger = logging.getLogger(__name__)

DOCUMENT = '#document'


@dataclass(frozen=True)
class Node:
    """One element of the document arena; children are arena indices"""

    name: str
    attrs: Dict[str, str]
    children: Tuple[int, ...]


class DocumentTree:
    """Immutable snapshot of a parsed page addressed by node index.

    Index 0 is the document root. Only element nodes are kept since text,
    comments and doctypes never carry script references.
    """

    ROOT = 0

    def __init__(self, nodes: List[Node]):
        self._nodes = tuple(nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    @classmethod
    def parse(cls, markup: Union[str, bytes]) -> 'DocumentTree':
        """Parse HTML with BeautifulSoup and flatten it into an arena"""
        soup = BeautifulSoup(markup, 'html.parser')
        return cls.from_soup(soup)

    @classmethod
    def from_soup(cls, soup: BeautifulSoup) -> 'DocumentTree':
        nodes: List[Node] = []
        # (bs4 tag, arena slot); slots are reserved before children are known
        pending = [(soup, 0)]
        slots: List[list] = [[DOCUMENT, {}, []]]

        while pending:
            tag, slot = pending.pop()
            for child in tag.children:
                if not isinstance(child, Tag):
                    continue
                child_slot = len(slots)
                slots.append([child.name.lower(), _flatten_attrs(child.attrs), []])
                slots[slot][2].append(child_slot)
                pending.append((child, child_slot))

        for name, attrs, children in slots:
            nodes.append(Node(name=name, attrs=attrs, children=tuple(children)))
        return cls(nodes)


def _flatten_attrs(attrs: Dict) -> Dict[str, str]:
    # bs4 returns multi-valued attributes (class, rel) as lists
    flat = {}
    for key, value in attrs.items():
        if isinstance(value, (list, tuple)):
            value = ' '.join(value)
        flat[key.lower()] = value
    return flat


class ScriptScanner:
    """Extracts absolute script URLs from a document tree"""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def iter_script_sources(self, tree: DocumentTree):
        """Yield raw src values of script elements in document order"""
        stack = [DocumentTree.ROOT]
        while stack:
            node = tree[stack.pop()]
            if node.name == 'script':
                src = node.attrs.get('src')
                # an empty src would resolve to the page itself
                if src is not None and src.strip():
                    yield src
                continue
            # reversed so that the first child is visited first
            stack.extend(reversed(node.children))

    def find_scripts(self, tree: DocumentTree) -> List[str]:
        """Resolve every script src against the base URL.

        Duplicates are kept. A src that cannot be joined is logged and
        skipped without stopping the walk.
        """
        # a bad base URL fails the whole extraction
        join_url(self.base_url, '.')

        scripts = []
        for src in self.iter_script_sources(tree):
            try:
                scripts.append(join_url(self.base_url, src))
            except UrlResolutionError as e:
                logger.warning(f"[!] Skipping script reference: {e}")
        return scripts

    def extract_js_urls(self, html: Union[str, bytes]) -> List[str]:
        """Parse the page and return its script URLs"""
        return self.find_scripts(DocumentTree.parse(html))
