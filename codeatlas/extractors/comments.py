"""Doc comment recovery from raw source lines."""

from __future__ import annotations

import inspect
from typing import List, Optional, Sequence

_STRING_PREFIX_CHARS = set("rRuUbBfF")


def jsdoc_above(lines: Sequence[str], row: int) -> Optional[str]:
    """Return the ``/** ... */`` description directly above 0-based ``row``.

    Blank lines between the block and the declaration are tolerated. The
    description stops at the first ``@tag`` line.
    """
    index = row - 1
    while index >= 0 and not lines[index].strip():
        index -= 1
    if index < 0 or not lines[index].strip().endswith("*/"):
        return None

    block: List[str] = []
    while index >= 0:
        text = lines[index].strip()
        block.append(text)
        if text.startswith("/*"):
            break
        index -= 1
    else:
        return None

    block.reverse()
    if not block[0].startswith("/**"):
        return None

    description: List[str] = []
    for position, line in enumerate(block):
        if position == 0:
            line = line[3:]
        if line.endswith("*/"):
            line = line[:-2]
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            break
        if line:
            description.append(line)

    text = " ".join(description).strip()
    return text or None


def line_comments_above(
    lines: Sequence[str],
    row: int,
    marker: str = "///",
    skip_prefixes: Sequence[str] = ("#[",),
) -> Optional[str]:
    """Collect contiguous ``marker`` comments above ``row``, skipping attributes."""
    collected: List[str] = []
    index = row - 1
    while index >= 0:
        text = lines[index].strip()
        if text.startswith(marker) and not text.startswith(marker + marker[-1]):
            collected.append(text[len(marker) :].strip())
        elif not any(text.startswith(prefix) for prefix in skip_prefixes):
            break
        index -= 1
    collected.reverse()
    text = " ".join(part for part in collected if part).strip()
    return text or None


def clean_docstring(raw: str) -> Optional[str]:
    """Strip string-literal quoting and indentation from a Python docstring."""
    text = raw.strip()
    prefix = 0
    while prefix < min(2, len(text)) and text[prefix] in _STRING_PREFIX_CHARS:
        prefix += 1
    text = text[prefix:]
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote) and text.endswith(quote) and len(text) >= 2 * len(quote):
            text = text[len(quote) : -len(quote)]
            break
    cleaned = inspect.cleandoc(text).strip()
    return cleaned or None


__all__ = ["clean_docstring", "jsdoc_above", "line_comments_above"]
