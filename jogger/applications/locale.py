"""
Locale preference resolution for localized description-file fields.

Description files carry keys such as ``Name[de_DE]`` next to a plain
``Name``. The resolver turns the environment into an ordered list of locale
tags, most specific first, that is matched against those key suffixes.
"""
import os
from typing import List, Mapping, Optional


# Locales that mean "no translation"
_NEUTRAL_LOCALES = {"", "C", "POSIX"}


def _split_locale(tag: str):
    """
    Split ``lang_COUNTRY.ENCODING@MODIFIER`` into its parts.

    The encoding is dropped; it never appears in description-file keys.
    """
    modifier = ""
    if "@" in tag:
        tag, modifier = tag.split("@", 1)
    tag = tag.split(".", 1)[0]
    country = ""
    if "_" in tag:
        tag, country = tag.split("_", 1)
    return tag, country, modifier


def locale_variants(tag: str) -> List[str]:
    """
    Expand one locale into the key suffixes it matches, in XDG order:
    lang_COUNTRY@MODIFIER, lang_COUNTRY, lang@MODIFIER, lang.
    """
    lang, country, modifier = _split_locale(tag)
    if not lang:
        return []

    variants = []
    if country and modifier:
        variants.append(f"{lang}_{country}@{modifier}")
    if country:
        variants.append(f"{lang}_{country}")
    if modifier:
        variants.append(f"{lang}@{modifier}")
    variants.append(lang)
    return variants


def get_locale_preferences(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Build the ordered locale preference list from the environment.

    The primary locale is the first non-empty of LC_ALL, LC_MESSAGES, LANG.
    When it is not C/POSIX, the colon-separated LANGUAGE list takes priority
    over it, as gettext does.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Locale tags, most specific first, without duplicates
    """
    environ = os.environ if environ is None else environ

    primary = ""
    for name in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = environ.get(name, "")
        if value:
            primary = value
            break

    if primary in _NEUTRAL_LOCALES:
        return []

    tags = [t for t in environ.get("LANGUAGE", "").split(":") if t]
    tags.append(primary)

    result: List[str] = []
    for tag in tags:
        if tag in _NEUTRAL_LOCALES:
            continue
        for variant in locale_variants(tag):
            if variant not in result:
                result.append(variant)
    return result
