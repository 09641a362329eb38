"""Light suffix-stripping stemmer for title tokens.

This is not a full Porter stemmer. It collapses the inflections that most
often separate two renderings of the same title ("Hunters" / "Hunter",
"Crossing" / "Crossed") and leaves everything else untouched.
"""

from __future__ import annotations

# (suffix, replacement, minimum stem length left after removing the suffix)
DERIVATIONAL_RULES: tuple[tuple[str, str, int], ...] = (
    ("ational", "ate", 2),
    ("tional", "tion", 2),
    ("ization", "ize", 2),
    ("fulness", "ful", 2),
    ("ousness", "ous", 2),
    ("iveness", "ive", 2),
    ("biliti", "ble", 2),
    ("ement", "", 3),
    ("ment", "", 3),
    ("ness", "", 3),
    ("ation", "ate", 2),
    ("ible", "", 3),
    ("able", "", 3),
    ("ful", "", 3),
    ("ous", "", 3),
    ("ive", "", 3),
    ("ize", "", 3),
    ("ise", "", 3),
    ("ly", "", 3),
)

_VOWELS = frozenset("aeiouy")


def _has_vowel(text: str) -> bool:
    return any(char in _VOWELS for char in text)


def _strip_plural(word: str) -> str:
    if word.endswith("sses"):
        return word[:-2]
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith("es") and word[-3:-2] in ("x", "z") and len(word) > 4:
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")) and len(word) > 3:
        return word[:-1]
    return word


def _strip_tense(word: str) -> str:
    for suffix in ("ing", "ed"):
        if word.endswith(suffix):
            stem = word[: -len(suffix)]
            if len(stem) >= 3 and _has_vowel(stem):
                # "running" -> "run", "stopped" -> "stop"
                if len(stem) > 3 and stem[-1] == stem[-2] and stem[-1] not in "lsz":
                    stem = stem[:-1]
                return stem
    return word


def _strip_derivational(word: str) -> str:
    for suffix, replacement, min_stem in DERIVATIONAL_RULES:
        if word.endswith(suffix):
            stem = word[: -len(suffix)]
            if len(stem) >= min_stem and _has_vowel(stem):
                return stem + replacement
            return word
    return word


def stem(token: str) -> str:
    """Reduce a lowercase token to an approximate root form.

    Rules run as a cascade: plural to singular, then past-tense and
    progressive endings, then common derivational suffixes.

    Args:
        token: Single lowercase word

    Returns:
        Stemmed token; tokens of two characters or fewer are returned as-is
    """
    if len(token) <= 2:
        return token

    stemmed = _strip_plural(token)
    stemmed = _strip_tense(stemmed)
    stemmed = _strip_derivational(stemmed)
    if stemmed.endswith("e") and len(stemmed) > 3 and stemmed[-2] not in _VOWELS:
        stemmed = stemmed[:-1]
    return stemmed
