"""
DeepL language code tables and utilities.

DeepL uses upper-case ISO 639-1 codes. Source languages are always base
codes ('EN', 'PT'); some target languages take a regional variant
('EN-GB', 'EN-US', 'PT-BR', 'ZH-HANT').

Glossaries are defined per base language pair, so a glossary created for
JA -> EN is also used when translating JA -> EN-GB. The helpers below derive
the glossary pair and the back-translation pair from a session's languages.
"""

from typing import Any, Dict, Optional, Tuple

# Source: https://developers.deepl.com/docs/resources/supported-languages
SOURCE_LANGUAGES = {
    'AR': 'Arabic',
    'BG': 'Bulgarian',
    'CS': 'Czech',
    'DA': 'Danish',
    'DE': 'German',
    'EL': 'Greek',
    'EN': 'English',
    'ES': 'Spanish',
    'ET': 'Estonian',
    'FI': 'Finnish',
    'FR': 'French',
    'HU': 'Hungarian',
    'ID': 'Indonesian',
    'IT': 'Italian',
    'JA': 'Japanese',
    'KO': 'Korean',
    'LT': 'Lithuanian',
    'LV': 'Latvian',
    'NB': 'Norwegian (Bokmål)',
    'NL': 'Dutch',
    'PL': 'Polish',
    'PT': 'Portuguese',
    'RO': 'Romanian',
    'RU': 'Russian',
    'SK': 'Slovak',
    'SL': 'Slovenian',
    'SV': 'Swedish',
    'TR': 'Turkish',
    'UK': 'Ukrainian',
    'ZH': 'Chinese',
}

# Regional variants accepted only as target languages
TARGET_VARIANTS = {
    'EN-GB': 'English (British)',
    'EN-US': 'English (American)',
    'PT-BR': 'Portuguese (Brazilian)',
    'PT-PT': 'Portuguese (European)',
    'ZH-HANS': 'Chinese (Simplified)',
    'ZH-HANT': 'Chinese (Traditional)',
}

# Bare 'EN' and 'PT' are deprecated as targets but still accepted by the API
TARGET_LANGUAGES = {**SOURCE_LANGUAGES, **TARGET_VARIANTS}


def normalize_code(code: Any) -> str:
    """
    Normalize a language code to DeepL's upper-case form.

    Examples:
        >>> normalize_code(' en-gb ')
        'EN-GB'
        >>> normalize_code('ja')
        'JA'
    """
    if not isinstance(code, str):
        return ''
    return code.strip().replace('_', '-').upper()


def is_source_language(code: Any) -> bool:
    return normalize_code(code) in SOURCE_LANGUAGES


def is_target_language(code: Any) -> bool:
    return normalize_code(code) in TARGET_LANGUAGES


def get_language_name(code: str) -> Optional[str]:
    """
    Get the full language name from code.

    Examples:
        >>> get_language_name('ja')
        'Japanese'
        >>> get_language_name('EN-GB')
        'English (British)'
    """
    return TARGET_LANGUAGES.get(normalize_code(code))


def extract_base_language(code: str) -> str:
    """
    Extract base language from code (remove region or script).

    Examples:
        >>> extract_base_language('EN-GB')
        'EN'
        >>> extract_base_language('zh-hant')
        'ZH'
        >>> extract_base_language('JA')
        'JA'
    """
    return normalize_code(code).split('-')[0]


def languages_match(code1: str, code2: str, strict: bool = False) -> bool:
    """
    Check if two language codes match.

    Args:
        code1: First language code
        code2: Second language code
        strict: If True, must match exactly. If False, base language match is ok.

    Examples:
        >>> languages_match('EN', 'EN-US')
        True
        >>> languages_match('EN', 'EN-US', strict=True)
        False
    """
    if strict:
        return normalize_code(code1) == normalize_code(code2)

    return extract_base_language(code1) == extract_base_language(code2)


def glossary_language_pair(source_lang: str, target_lang: str) -> Tuple[str, str]:
    """
    Language pair to create a glossary for.

    Examples:
        >>> glossary_language_pair('JA', 'EN-GB')
        ('JA', 'EN')
    """
    return extract_base_language(source_lang), extract_base_language(target_lang)


def back_translation_pair(source_lang: str, target_lang: str) -> Tuple[str, str]:
    """
    Swap a translation pair for the back-translation.

    The primary target becomes the source (as a base code, since DeepL
    rejects regional variants as source) and the primary source becomes
    the target.

    Examples:
        >>> back_translation_pair('JA', 'EN')
        ('EN', 'JA')
        >>> back_translation_pair('DE', 'EN-US')
        ('EN', 'DE')
    """
    return extract_base_language(target_lang), normalize_code(source_lang)


def get_source_languages() -> Dict[str, str]:
    return SOURCE_LANGUAGES.copy()


def get_target_languages() -> Dict[str, str]:
    return TARGET_LANGUAGES.copy()
