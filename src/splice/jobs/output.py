"""Turning prediction output payloads into plain code text."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping

_FENCE_OPENER = re.compile(r"```[\w+#.-]*\n")
_FENCE_LINE = re.compile(r"^\s*```[\w+#.-]*\s*$")
_FENCE = "```"


def extract_output_text(output) -> str:
    """Normalize a prediction ``output`` field to text.

    Strings pass through; sequences (streamed token lists) are joined with
    no separator; mappings yield their ``text`` or ``content`` field, in
    that order. Anything else is pretty-printed as JSON so nothing is
    silently dropped.
    """
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    if isinstance(output, (list, tuple)):
        return "".join(
            item if isinstance(item, str) else extract_output_text(item)
            for item in output
        )
    if isinstance(output, Mapping):
        for key in ("text", "content"):
            value = output.get(key)
            if value:
                return extract_output_text(value)
    return json.dumps(output, indent=2, default=str)


def clean_code_output(text: str) -> str:
    """Strip markdown fences and leading blank lines from model output.

    An opening fence with its language tag is removed wherever it starts,
    including mid-line after leading prose.
    """
    lines: list[str] = []
    started = False
    for line in _FENCE_OPENER.sub("", text).split("\n"):
        if _FENCE_LINE.match(line):
            continue
        line = line.replace(_FENCE, "")
        if not started and not line.strip():
            continue
        started = True
        lines.append(line)
    return "\n".join(lines)
