import re

NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def normalize_identifier(value: str | None) -> str:
    if not value:
        return ""
    return NON_ALNUM_RE.sub("", str(value).strip()).lower()


def _strip_leading_zeros(value: str) -> str:
    return value.lstrip("0") or "0"


def fuzzy_match(a: str | None, b: str | None) -> bool:
    """Compare two UPC/SKU strings tolerating punctuation, zero padding and a dropped check digit."""
    left = normalize_identifier(a)
    right = normalize_identifier(b)
    if not left or not right:
        return False
    if left == right:
        return True

    left = _strip_leading_zeros(left)
    right = _strip_leading_zeros(right)
    if left == right:
        return True

    # Containment alone is too loose for short codes.
    if left in right or right in left:
        return abs(len(left) - len(right)) <= 2
    return False


def normalize_text(value: str | None) -> str:
    if not value:
        return ""
    clean = value.strip().upper()
    clean = re.sub(r"[^A-Z0-9 ]", " ", clean)
    clean = re.sub(r"\s+", " ", clean)
    return clean.strip()
