"""
Language code mappings and utilities.

Standards:
- ISO 639-1: 2-letter language codes (en, pt, es)
- BCP 47: Language + Region codes (en-US, pt-BR)

Prompts address the model with language names ("Portuguese"), while job
configuration stores codes ("pt"). The quality guard keys its marker word
lists by base language code.
"""

from typing import Optional, Dict

# ISO 639-1 language codes (2-letter)
ISO_639_1 = {
    'ar': 'Arabic',
    'ca': 'Catalan',
    'cs': 'Czech',
    'da': 'Danish',
    'de': 'German',
    'el': 'Greek',
    'en': 'English',
    'es': 'Spanish',
    'fi': 'Finnish',
    'fr': 'French',
    'he': 'Hebrew',
    'hi': 'Hindi',
    'hu': 'Hungarian',
    'id': 'Indonesian',
    'it': 'Italian',
    'ja': 'Japanese',
    'ko': 'Korean',
    'nl': 'Dutch',
    'no': 'Norwegian',
    'pl': 'Polish',
    'pt': 'Portuguese',
    'ro': 'Romanian',
    'ru': 'Russian',
    'sv': 'Swedish',
    'tr': 'Turkish',
    'uk': 'Ukrainian',
    'vi': 'Vietnamese',
    'zh': 'Chinese',
}

# BCP 47 language-region codes (common variants)
BCP_47_VARIANTS = {
    'en-US': 'English (United States)',
    'en-GB': 'English (United Kingdom)',
    'es-ES': 'Spanish (Spain)',
    'es-MX': 'Spanish (Mexico)',
    'pt-BR': 'Portuguese (Brazil)',
    'pt-PT': 'Portuguese (Portugal)',
    'fr-FR': 'French (France)',
    'fr-CA': 'French (Canada)',
    'de-DE': 'German (Germany)',
    'zh-CN': 'Chinese (Simplified, China)',
    'zh-TW': 'Chinese (Traditional, Taiwan)',
}

# Combined mapping
ALL_LANGUAGE_CODES = {**ISO_639_1, **BCP_47_VARIANTS}


def is_valid_language_code(code: str) -> bool:
    """
    Check if a language code is known.

    Examples:
        >>> is_valid_language_code('pt-BR')
        True
        >>> is_valid_language_code('invalid')
        False
    """
    return code in ALL_LANGUAGE_CODES


def extract_base_language(code: str) -> str:
    """
    Extract base language from code (remove region).

    Examples:
        >>> extract_base_language('pt-BR')
        'pt'
        >>> extract_base_language('fr')
        'fr'
    """
    return code.split('-')[0].lower()


def get_language_name(code: str) -> Optional[str]:
    """
    Get the plain language name for a code, ignoring the region.

    Examples:
        >>> get_language_name('en')
        'English'
        >>> get_language_name('pt-BR')
        'Portuguese'
    """
    if not code:
        return None
    return ISO_639_1.get(extract_base_language(code)) or ALL_LANGUAGE_CODES.get(code)


def display_name(code: str) -> str:
    """Language name for prompts, falling back to the raw code."""
    return get_language_name(code) or code


def languages_match(code1: str, code2: str, strict: bool = False) -> bool:
    """
    Check if two language codes match.

    Examples:
        >>> languages_match('pt', 'pt-BR')
        True
        >>> languages_match('pt', 'pt-BR', strict=True)
        False
    """
    if strict:
        return code1 == code2
    return extract_base_language(code1) == extract_base_language(code2)


def get_all_language_codes() -> Dict[str, str]:
    """Get all supported language codes."""
    return ALL_LANGUAGE_CODES.copy()
