"""Target languages offered for page translation."""

from typing import Optional


LANGUAGES = {
    "en": "English",
    "es-la": "Spanish (Latin America)",
    "es-es": "Spanish (Spain)",
    "pt-br": "Portuguese (Brazil)",
    "pt-pt": "Portuguese (Portugal)",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ru": "Russian",
    "jp": "Japanese (Transcription)",
    "zh-cn": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ko": "Korean",
    "id": "Indonesian",
    "vi": "Vietnamese",
    "th": "Thai",
    "ar": "Arabic",
    "hi": "Hindi",
}


def resolve_language(value: str) -> Optional[str]:
    """Return the language name for a code or name, case-insensitive."""
    key = value.strip().lower()
    if key in LANGUAGES:
        return LANGUAGES[key]
    for name in LANGUAGES.values():
        if name.lower() == key:
            return name
    return None
