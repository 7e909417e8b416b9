import re

from ..models import MemoryItem

DEFAULT_MIN_CONTENT_LENGTH = 10

# Placeholder strings the extractor has been seen to store as "facts".
JUNK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^fact$", re.IGNORECASE),
    re.compile(r"^fact to store$", re.IGNORECASE),
    re.compile(r"^age:\s*not specified$", re.IGNORECASE),
    re.compile(r"^unknown$", re.IGNORECASE),
    re.compile(r"^n/a$", re.IGNORECASE),
    re.compile(r"^test$", re.IGNORECASE),
    re.compile(r"^\s*$"),
    re.compile(r"^none$", re.IGNORECASE),
    re.compile(r"^not specified$", re.IGNORECASE),
    re.compile(r"^no information$", re.IGNORECASE),
)


def content_length(item: MemoryItem) -> int:
    """Length of the item's text (goal text for goal payloads), ignoring surrounding whitespace."""
    return len(item.text.strip())


def is_junk(content: str, min_length: int = DEFAULT_MIN_CONTENT_LENGTH) -> bool:
    trimmed = content.strip()
    if len(trimmed) < min_length:
        return True
    return any(p.search(trimmed) for p in JUNK_PATTERNS)


def detect_junk_items(
    items: list[MemoryItem],
    min_length: int = DEFAULT_MIN_CONTENT_LENGTH,
) -> list[MemoryItem]:
    """Return the items that are too short or match a known noise pattern, in input order."""
    return [item for item in items if is_junk(item.text, min_length)]
