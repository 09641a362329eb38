"""Title text normalization helpers.

These functions are pure and uncached. ``SimilarityEngine`` wraps
``normalize_title`` and ``split_meaningful_words`` with its bounded caches.
"""

from __future__ import annotations

import re
import unicodedata

# Decorations stripped before comparison. Patterns run after whitespace has
# been collapsed to single spaces, so every ``\s?`` consumes at most one
# character and no pattern nests quantifiers.
IGNORABLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\[[^\]]*\]\s?"),  # [Tag] at start
    re.compile(r"\s?\[[^\]]*\]$"),  # [Tag] at end
    re.compile(r"^\([^)]*\)\s?"),  # (Text) at start
    re.compile(r"\s?\([^)]*\)$"),  # (Text) at end
    re.compile(r"\s?-\s?raw$", re.IGNORECASE),
    re.compile(r"\s?\braw$", re.IGNORECASE),
    re.compile(r"\s?\bscans?$", re.IGNORECASE),
    re.compile(r"\s?\bmanga$", re.IGNORECASE),
    re.compile(r"\s?\bcomics?$", re.IGNORECASE),
    re.compile(r"\s?\bdoujin(?:shi)?$", re.IGNORECASE),
    re.compile(r"\s?\banthology$", re.IGNORECASE),
    re.compile(r"\s?\bcollection$", re.IGNORECASE),
    re.compile(r"\s?\bvol(?:ume)?\.?\s?\d+", re.IGNORECASE),
    re.compile(r"\s?\bch(?:apter)?\.?\s?\d+", re.IGNORECASE),
    re.compile(r"\s?\bone-?\s?shot$", re.IGNORECASE),
)

# Whole-word abbreviations and romanized particles, applied case-insensitively.
ABBREVIATIONS: tuple[tuple[str, str], ...] = (
    ("vs", "versus"),
    ("&", "and"),
    ("w/", "with"),
    ("wo", "without"),
    ("no", "of"),
    ("wa", "the"),
    ("ga", ""),
    ("ni", "to"),
    ("o", ""),
    ("de", "in"),
    ("kara", "from"),
    ("made", "until"),
    ("re:", "re"),
    ("∞", "infinity"),
    ("♡", "love"),
    ("★", "star"),
    ("☆", "star"),
)


def _whole_word_pattern(abbrev: str) -> re.Pattern[str]:
    # Boundaries apply only to word-character edges, so "re:" still matches "Re:Zero".
    prefix = r"(?<!\w)" if re.match(r"\w", abbrev[0]) else ""
    suffix = r"(?!\w)" if re.match(r"\w", abbrev[-1]) else ""
    return re.compile(f"{prefix}{re.escape(abbrev)}{suffix}", re.IGNORECASE)


_ABBREVIATION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (_whole_word_pattern(abbrev), expansion) for abbrev, expansion in ABBREVIATIONS
)

STOP_WORDS: frozenset[str] = frozenset(
    {
        # English
        "the",
        "a",
        "an",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "of",
        "with",
        "by",
        # Japanese particles and copulas
        "wa",
        "no",
        "ga",
        "wo",
        "ni",
        "de",
        "kara",
        "made",
        "da",
        "desu",
        "des",
        # Generic format words
        "manga",
        "comic",
        "doujin",
        "doujinshi",
        "anthology",
        "collection",
    }
)

ARTICLES: frozenset[str] = frozenset({"a", "an", "the"})

_PUNCTUATION_TABLE = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "–": "-",  # en dash
        "—": "-",  # em dash
        "…": "...",
        "×": "x",
        "、": ",",  # ideographic comma
        "。": ".",  # ideographic full stop
        "「": '"',
        "」": '"',
        "『": '"',
        "』": '"',
        "【": "[",
        "】": "]",
        "・": " ",  # katakana middle dot
        "　": " ",  # ideographic space
    }
)

_CYRILLIC_TABLE = str.maketrans(
    {
        # Basic Cyrillic -> Latin
        "о": "o",
        "О": "O",
        "а": "a",
        "А": "A",
        "е": "e",
        "Е": "E",
        "с": "c",
        "С": "C",
        "р": "p",
        "Р": "P",
        # Single-letter homoglyphs
        "к": "k",
        "К": "K",
        "м": "m",
        "М": "M",
        "н": "n",
        "Н": "N",
        "т": "t",
        "Т": "T",
        "х": "x",
        "Х": "X",
        "в": "v",
        "В": "V",
        "у": "u",
        "У": "U",
        "і": "i",
        "І": "I",
        "ј": "j",
        "Ј": "J",
        # Multi-letter transliterations
        "ю": "yu",
        "Ю": "Yu",
        "я": "ya",
        "Я": "Ya",
        "ж": "zh",
        "Ж": "Zh",
        "ч": "ch",
        "Ч": "Ch",
        "ш": "sh",
        "Ш": "Sh",
        "щ": "shch",
        "Щ": "Shch",
        "ц": "ts",
        "Ц": "Ts",
        "ы": "y",
        "Ы": "Y",
        "э": "e",
        "Э": "E",
        # Soft and hard signs are dropped
        "ь": None,
        "Ь": None,
        "ъ": None,
        "Ъ": None,
    }
)

_FULL_WIDTH_TABLE = {code: code - 0xFEE0 for code in range(0xFF01, 0xFF5F)}
_COMBINING_DIACRITICS = re.compile(r"[\u0300-\u036f]")
_WHITESPACE = re.compile(r"\s+")


def _is_word_char(char: str) -> bool:
    # Letters, digits and combining marks such as Indic vowel signs
    return char.isalnum() or unicodedata.category(char).startswith("M")


def _spaced_words(text: str) -> str:
    """Replace each non-word character (underscore included) with a space."""
    return "".join(char if _is_word_char(char) else " " for char in text)


def replace_special_chars(text: str) -> str:
    """Replace Cyrillic letters and common homoglyphs with Latin transliterations.

    Args:
        text: Input string

    Returns:
        String with Cyrillic characters mapped to Latin equivalents
        (e.g. "ж" → "zh") and soft/hard signs removed
    """
    return text.translate(_CYRILLIC_TABLE)


def strip_decorations(text: str) -> str:
    """Collapse whitespace and remove bracketed tags and known suffix/marker words.

    Args:
        text: Raw title

    Returns:
        Title without decorations, trimmed
    """
    stripped = _WHITESPACE.sub(" ", text).strip()
    for pattern in IGNORABLE_PATTERNS:
        stripped = pattern.sub("", stripped)
    return stripped.strip()


def _fold_characters(text: str) -> str:
    # NFD, full-width to half-width, drop Latin accents, then recompose the rest
    folded = unicodedata.normalize("NFD", text).translate(_FULL_WIDTH_TABLE)
    return unicodedata.normalize("NFC", _COMBINING_DIACRITICS.sub("", folded))


def expand_abbreviations(text: str) -> str:
    """Expand whole-word abbreviations (e.g. "vs" → "versus", "&" → "and")."""
    for pattern, expansion in _ABBREVIATION_PATTERNS:
        text = pattern.sub(expansion, text)
    return text


def normalize_title(text: str) -> str:
    """Convert a raw title into its canonical, unspaced comparison form.

    Steps: trim and strip decorations, Unicode decomposition, full-width
    folding, Latin diacritic removal and recomposition, Cyrillic
    transliteration, punctuation normalization, abbreviation expansion,
    removal of every non-word character (whitespace included) and
    lowercasing. Combining marks of non-Latin scripts are kept.

    Args:
        text: Raw title in any script

    Returns:
        Normalized title; empty string for empty or decoration-only input
    """
    if not text:
        return ""

    normalized = strip_decorations(text)
    normalized = replace_special_chars(_fold_characters(normalized))
    normalized = normalized.translate(_PUNCTUATION_TABLE)
    normalized = expand_abbreviations(normalized)
    return "".join(_spaced_words(normalized).split()).lower()


def split_meaningful_words(text: str) -> list[str]:
    """Extract meaningful lowercase tokens from a title, keeping word boundaries.

    Applies the same decoration stripping as ``normalize_title`` but turns
    punctuation into single spaces instead of removing it, then drops
    one-character tokens and stop words.

    Args:
        text: Raw title

    Returns:
        Tokens in title order
    """
    if not text:
        return []

    lowered = strip_decorations(_fold_characters(text).lower())
    lowered = lowered.translate(_PUNCTUATION_TABLE)
    words = _spaced_words(lowered).split()
    return [word for word in words if len(word) > 1 and word not in STOP_WORDS]


def simple_words(text: str) -> list[str]:
    """Lowercase, punctuation-free words without stop-word filtering."""
    lowered = _fold_characters(text).lower().replace("-", "")
    return _spaced_words(lowered).split()
