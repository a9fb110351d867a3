"""Internationalization module - provides t("key") for translated strings.

User-facing notification text goes through t("key") to support EN/RO.
Add new translations to _TRANSLATIONS dict with both "en" and "ro" values.
"""
from typing import Dict

_current_language: str = "en"

LANGUAGES: Dict[str, Dict[str, str]] = {
    "en": {"name": "English", "code": "EN"},
    "ro": {"name": "Română", "code": "RO"},
}

_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "reminder_body": {"en": "Reminder: {task}", "ro": "Memento: {task}"},
    "focus_body": {"en": "Focus: {task}", "ro": "Concentrare: {task}"},
}


def get_language() -> str:
    return _current_language


def set_language(lang: str) -> None:
    """Switch the active language. Unknown codes fall back to English."""
    global _current_language
    _current_language = lang if lang in LANGUAGES else "en"


def t(key: str) -> str:
    """Translate a key, falling back to English and then to the key itself."""
    entry = _TRANSLATIONS.get(key)
    if entry is None:
        return key
    return entry.get(_current_language) or entry["en"]
