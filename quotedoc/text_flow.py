import re
from typing import Callable, List

# measure(text, font_size) -> width in the same unit as max_width
Measure = Callable[[str, float], float]

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_EMPHASIS = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)


def wrap_text(text: str, max_width: float, measure: Measure, font_size: float) -> List[str]:
    """Greedy word wrap.

    Words are never split: a word wider than ``max_width`` gets a line of its own.
    Returns an empty list for blank input.
    """
    words = (text or "").split()
    lines: List[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}" if current else word
        if not current or measure(candidate, font_size) <= max_width:
            current = candidate
            continue
        lines.append(current)
        current = word
    if current:
        lines.append(current)
    return lines


def split_paragraphs(text: str) -> List[str]:
    """Blank-line separated paragraphs, trimmed, empties dropped."""
    if not text:
        return []
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def strip_emphasis(text: str) -> str:
    """Terms are stored with ``**bold**`` markers; the proposal prints them plain."""
    return _EMPHASIS.sub(r"\1", text or "")
