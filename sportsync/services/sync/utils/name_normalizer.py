"""Name normalization utilities for league, team and player matching.

Handles common variations across providers:
- Accents: "Gustav Ludwigsson Lindén" → "gustav ludwigsson linden"
- Punctuation: "Seoul E-Land FC" → "seoul eland fc"
- Case: "ULSAN HD" → "ulsan hd"
- Extra spaces: "Jeju  United" → "jeju united"
- Club affixes (teams only): "FC Seoul" → "seoul"
"""
import re
import unicodedata
from typing import List, Optional, Tuple


# Generic club affixes that carry no identity ("FC Seoul" vs "Seoul")
CLUB_AFFIXES = {'fc', 'cf', 'sc', 'afc', 'fk', 'sk', 'club'}


def normalize(name: Optional[str]) -> str:
    """
    Normalize a name for comparison.

    Steps:
    1. Normalize unicode characters (accents)
    2. Convert to lowercase
    3. Remove punctuation (but keep letters and digits)
    4. Remove extra whitespace

    Examples:
        >>> normalize("Seoul E-Land FC")
        'seoul eland fc'
        >>> normalize("Jeonbuk  Hyundai Motors")
        'jeonbuk hyundai motors'
    """
    if not name:
        return ""

    name = _normalize_unicode(name)
    name = name.lower()
    name = re.sub(r'[^\w\s]', '', name)
    name = ' '.join(name.split())

    return name


def _normalize_unicode(name: str) -> str:
    """
    Remove accents and diacritics from unicode characters.

    Hangul and other scripts without combining marks pass through.
    """
    normalized = unicodedata.normalize('NFD', name)
    stripped = ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )
    # Recompose so Hangul syllables decomposed by NFD are restored
    return unicodedata.normalize('NFC', stripped)


def normalize_team_name(team_name: Optional[str]) -> str:
    """
    Normalize team names for comparison.

    Same as normalize() but also drops generic club affixes, unless the
    name would become empty.

    Examples:
        >>> normalize_team_name("FC Seoul")
        'seoul'
        >>> normalize_team_name("Daejeon Hana Citizen FC")
        'daejeon hana citizen'
    """
    normalized = normalize(team_name)
    tokens = [t for t in normalized.split() if t not in CLUB_AFFIXES]
    if not tokens:
        return normalized
    return ' '.join(tokens)


def normalize_country(country: Optional[str]) -> str:
    """
    Normalize a country name; providers disagree on separators.

    Examples:
        >>> normalize_country("South-Korea")
        'southkorea'
        >>> normalize_country("South Korea")
        'southkorea'
    """
    return normalize(country).replace(' ', '')


def tokens(name: str) -> List[str]:
    """Whitespace tokens of an already normalized name."""
    return name.split()


def are_names_equal(name1: Optional[str], name2: Optional[str]) -> bool:
    """Check if two names are equal after normalization (both non-empty)."""
    norm1 = normalize(name1)
    norm2 = normalize(name2)
    return bool(norm1) and norm1 == norm2


def extract_player_name_parts(name: str) -> Tuple[str, str]:
    """
    Split a player name into first and last name.

    - "Joo Min-Kyu" → ("Joo", "Min-Kyu")
    - "Gustav Ludwigsson Lindén" → ("Gustav", "Ludwigsson Lindén")
    - "Juninho" → ("Juninho", "")
    """
    parts = (name or "").split()

    if not parts:
        return ("", "")

    if len(parts) == 1:
        return (parts[0], "")

    return (parts[0], ' '.join(parts[1:]))
