# util/functions.py
import hashlib
import re

_WS = re.compile(r"\s+")


def sha256_hex(data: bytes | str) -> str:
    """
    - Hex SHA-256 of `data`; str input is UTF-8 encoded first.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def normalize_ws(text: str) -> str:
    return _WS.sub(" ", text or "").strip()


def clip_chars(text: str, max_chars: int) -> str:
    """
    - Trim `text` to at most `max_chars` characters (no ellipsis; callers quote it).
    """
    return (text or "")[:max_chars]


def locate_ci(haystack: str, needle: str) -> int:
    """
    - Case-insensitive `str.find`. Returns -1 for an empty needle.
    - Offsets are only trusted when lowercasing keeps the length (some
      non-ASCII characters expand), otherwise we re-scan the original text.
    """
    if not needle or not haystack:
        return -1
    lowered, target = haystack.lower(), needle.lower()
    pos = lowered.find(target)
    if pos == -1:
        return -1
    if len(lowered) == len(haystack):
        return pos
    n = len(needle)
    for i in range(len(haystack) - n + 1):
        if haystack[i : i + n].lower() == target:
            return i
    return -1


def context_window(text: str, position: int, length: int, radius: int = 50) -> str:
    start = max(0, position - radius)
    end = min(len(text), position + length + radius)
    return text[start:end]
