import re
import unicodedata


def _strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "")
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def normalize_display_name(value: str) -> str:
    """Trim and collapse repeated spaces, keeping accents and punctuation."""
    return re.sub(r"\s+", " ", (value or "").strip())


def name_lookup_key(value: str) -> str:
    """
    Comparison key for matching names typed by different people:
    no accents, lowercase, single spaces.
    """
    return normalize_display_name(_strip_accents(value)).casefold()


def normalize_phone(value: str) -> str:
    """Keep only digits."""
    return re.sub(r"\D", "", (value or "").strip())


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()
