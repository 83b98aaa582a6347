"""Named structural blocks: extraction and block-level reconciliation.

Blocks are found with four regular expressions, not a parser. A block is a
declaration followed by a brace-delimited body, and the body may contain at
most three levels of nested brace pairs. Anything deeper, or anything
written in a syntax the patterns do not know, simply yields no block.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_NESTED_BRACES = 3

_NAME = r"[A-Za-z_$][\w$]*"
_PARAMS = r"\([^()]*\)"


def _brace_body(depth: int) -> str:
    """Pattern for ``{...}`` allowing ``depth`` levels of nested pairs inside."""
    if depth <= 0:
        return r"\{[^{}]*\}"
    return r"\{(?:[^{}]|" + _brace_body(depth - 1) + r")*\}"


_BODY = "(?P<body>" + _brace_body(MAX_NESTED_BRACES) + ")"

# Order matters: later patterns overwrite earlier ones for the same name.
_BLOCK_PATTERNS: list[tuple[str, re.Pattern]] = [
    (
        "function",
        re.compile(
            r"(?P<decl>\b(?:async\s+)?(?:function\*?|func|fn)\s+"
            rf"(?P<name>{_NAME})\s*{_PARAMS}[^{{}};]*?{_BODY})"
        ),
    ),
    (
        "lambda",
        re.compile(
            r"(?P<decl>\b(?:(?:const|let|var)\s+)?"
            rf"(?P<name>{_NAME})\s*=\s*(?:async\s+)?{_PARAMS}\s*=>\s*{_BODY})"
        ),
    ),
    (
        "class",
        re.compile(
            rf"(?P<decl>\bclass\s+(?P<name>{_NAME})"
            rf"(?:\s+extends\s+[\w$.]+)?\s*{_BODY})"
        ),
    ),
    (
        "method",
        re.compile(
            r"^[ \t]*(?P<decl>(?:(?:async|static|get|set)\s+)*"
            r"(?!(?:if|for|while|switch|catch|with|return|function|else|do)\b)"
            rf"(?P<name>{_NAME})\s*{_PARAMS}\s*{_BODY})",
            re.MULTILINE,
        ),
    ),
]


@dataclass(frozen=True)
class CodeBlock:
    """A named declaration sliced out of a buffer.

    ``full_text`` is a literal substring of the buffer it came from
    (signature through closing brace). ``body_text`` is what sits between
    the outer braces.
    """

    name: str
    full_text: str
    body_text: str
    kind: str = ""


def extract_blocks(text: str) -> dict[str, CodeBlock]:
    """Map block names to blocks found in ``text``.

    Patterns run in a fixed order (functions, name-bound lambdas, classes,
    bare methods) and each scans left to right. When a name repeats, the
    last match wins, so a later pattern overrides an earlier one.
    """
    blocks: dict[str, CodeBlock] = {}
    for kind, pattern in _BLOCK_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group("name")
            blocks[name] = CodeBlock(
                name=name,
                full_text=match.group("decl"),
                body_text=match.group("body")[1:-1],
                kind=kind,
            )
    return blocks


def merge_by_blocks(source: str, candidate: str) -> str:
    """Swap same-named blocks from ``candidate`` into ``source``.

    A block known to both sides replaces the first literal occurrence of the
    source block's text. A block only the candidate has is appended after a
    blank line. With no candidate blocks at all, ``source`` comes back
    unchanged, which tells the caller to try something else.
    """
    candidate_blocks = extract_blocks(candidate)
    if not candidate_blocks:
        return source

    source_blocks = extract_blocks(source)
    result = source
    replaced = appended = 0
    for name, block in candidate_blocks.items():
        existing = source_blocks.get(name)
        if existing is not None:
            if existing.full_text in result:
                result = result.replace(existing.full_text, block.full_text, 1)
                replaced += 1
            continue
        if result.endswith("\n"):
            result = f"{result}\n{block.full_text}\n"
        else:
            result = f"{result}\n\n{block.full_text}"
        appended += 1

    logger.debug(
        "Block merge: %d candidate block(s), %d replaced, %d appended",
        len(candidate_blocks), replaced, appended,
    )
    return result
