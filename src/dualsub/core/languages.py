"""Target language definitions and code conversions.

Target languages use DeepL-style codes (``EN-US``, ``PT-BR``, ``ZH-HANS``).
Google Translate and Wiktionary want plain ISO 639-1 codes, so helpers
here convert between the two.
"""

from __future__ import annotations

# fmt: off
TARGET_LANGUAGES: dict[str, str] = {
    "EN-US": "English",    "EN-GB": "English",      "DE": "German",
    "FR": "French",        "ES": "Spanish",         "IT": "Italian",
    "NL": "Dutch",         "PL": "Polish",          "PT-PT": "Portuguese",
    "PT-BR": "Brazilian Portuguese",                "RU": "Russian",
    "JA": "Japanese",      "ZH": "Chinese",         "ZH-HANS": "Chinese (Simplified)",
    "ZH-HANT": "Chinese (Traditional)",             "KO": "Korean",
    "VI": "Vietnamese",    "SV": "Swedish",         "DA": "Danish",
    "NO": "Norwegian",     "FI": "Finnish",
}

# Aliases folded onto ISO 639-1 codes before comparing languages.
_LANGUAGE_ALIASES: dict[str, str] = {
    "eng": "en", "english": "en",
    "fin": "fi", "finnish": "fi", "suomi": "fi",
    "swe": "sv", "swedish": "sv", "svenska": "sv",
    "deu": "de", "german": "de",
    "fra": "fr", "french": "fr",
    "spa": "es", "spanish": "es",
    "por": "pt", "portuguese": "pt",
    "ita": "it", "italian": "it",
    "nld": "nl", "dutch": "nl",
    "rus": "ru", "russian": "ru",
    "jpn": "ja", "japanese": "ja",
    "kor": "ko", "korean": "ko",
    "zho": "zh", "chinese": "zh",
    "nb": "no", "nn": "no", "nor": "no", "norwegian": "no",
    "dan": "da", "danish": "da",
    "pol": "pl", "polish": "pl",
    "vie": "vi", "vietnamese": "vi",
    "iw": "he", "heb": "he", "hebrew": "he",
}

_GOOGLE_CODES: dict[str, str] = {
    "EN-US": "en", "EN-GB": "en",
    "PT-PT": "pt", "PT-BR": "pt",
    "ZH": "zh-CN", "ZH-HANS": "zh-CN", "ZH-HANT": "zh-TW",
}

WIKTIONARY_LANGUAGES: set[str] = {
    "en", "fi", "sv", "de", "fr", "es", "pt", "it", "nl", "ru", "ja", "zh",
    "pl", "vi", "ko", "ar", "cs", "hu", "id", "tr", "th", "el", "uk", "he",
    "da", "no", "ro", "hi", "ms",
}
# fmt: on


def is_valid_language(code: str) -> bool:
    """Check if a code is a supported target language."""
    return code.upper() in TARGET_LANGUAGES


def language_name(code: str) -> str:
    """Get the human-readable name for a code, or the code itself if unknown."""
    return TARGET_LANGUAGES.get(code.upper(), code)


def validate_language(code: str) -> str:
    """Validate a target language code and return it upper-cased."""
    upper = code.upper()
    if upper not in TARGET_LANGUAGES:
        raise ValueError(
            f"Unsupported language: '{code}'. "
            f"Run 'dualsub languages' to see all {len(TARGET_LANGUAGES)} supported languages."
        )
    return upper


def normalize_language_code(code: str | None) -> str:
    """Reduce any language code or name to a two-letter ISO 639-1 code."""
    if not code:
        return "en"
    lowered = code.strip().lower()
    if lowered in _LANGUAGE_ALIASES:
        return _LANGUAGE_ALIASES[lowered]
    primary = lowered.replace("_", "-").split("-")[0]
    return _LANGUAGE_ALIASES.get(primary, primary) or "en"


def is_same_language(first: str | None, second: str | None) -> bool:
    return normalize_language_code(first) == normalize_language_code(second)


def to_google_code(code: str) -> str:
    """Convert a target language code to Google Translate's ``tl`` form."""
    return _GOOGLE_CODES.get(code.upper(), code.lower().split("-")[0])


def wiktionary_language(target_code: str) -> str:
    """Wiktionary subdomain for definitions in the target language."""
    normalized = normalize_language_code(target_code)
    return normalized if normalized in WIKTIONARY_LANGUAGES else "en"
