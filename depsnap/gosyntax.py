"""Go syntax trees via Tree-sitter, plus comment-ownership helpers.

Tree-sitter keeps comments as ordinary sibling nodes instead of attaching
them to declarations, so the helpers here recover Go's notion of a *doc
comment*: the comment group directly above a declaration with no blank
line in between.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import tree_sitter_go
from tree_sitter import Language, Parser, Tree

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(tree_sitter_go.language())

# Statement terminators show up as anonymous children between declarations.
_TERMINATORS = {"\n", ";"}


class GoParser:
    """Error-tolerant Go parser built on the Tree-sitter Go grammar."""

    def __init__(self) -> None:
        self._parser = Parser(GO_LANGUAGE)

    def parse(self, source: bytes, file_name: str = "<source>") -> Tree:
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            logger.warning("Syntax errors while parsing %s", file_name)
        return tree


def node_text(node: Any, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8")


def _prev_token(node: Any) -> Optional[Any]:
    sib = node.prev_sibling
    while sib is not None and sib.type in _TERMINATORS:
        sib = sib.prev_sibling
    return sib


def _next_token(node: Any) -> Optional[Any]:
    sib = node.next_sibling
    while sib is not None and sib.type == ";":
        sib = sib.next_sibling
    return sib


def doc_comments(node: Any) -> List[Any]:
    """Return the doc comment group attached to *node*, top to bottom."""
    group: List[Any] = []
    top_row = node.start_point[0]
    sib = _prev_token(node)
    while sib is not None and sib.type == "comment" and top_row - sib.end_point[0] <= 1:
        group.append(sib)
        top_row = sib.start_point[0]
        sib = _prev_token(sib)
    group.reverse()

    # A comment sharing a line with the previous token trails that token.
    if group and sib is not None and sib.end_point[0] == group[0].start_point[0]:
        group.pop(0)
    return group


def trailing_comment(node: Any) -> Optional[Any]:
    """Return the comment that ends *node*'s last line, if any."""
    sib = _next_token(node)
    if sib is not None and sib.type == "comment" and sib.start_point[0] == node.end_point[0]:
        return sib
    return None


def owned_span(node: Any) -> Tuple[int, int]:
    """Byte span of *node* extended over its doc and trailing comments."""
    start, end = node.start_byte, node.end_byte
    docs = doc_comments(node)
    if docs:
        start = docs[0].start_byte
    trailer = trailing_comment(node)
    if trailer is not None:
        end = trailer.end_byte
    return start, end
