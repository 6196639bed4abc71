from __future__ import annotations

import re

# latin letters/digits, Latin-1 supplement + Latin Extended-A, CJK ideographs, hiragana, katakana
_MEANINGFUL = re.compile(r"[a-zA-Z0-9À-ſ一-鿿぀-ゟ゠-ヿ]")


def has_valid_content(content: str | None) -> bool:
    """True when the text is non-blank and carries at least one letter or digit."""
    if not content:
        return False
    trimmed = content.strip()
    if not trimmed:
        return False
    return _MEANINGFUL.search(trimmed) is not None
