"""Unit tests for name_normalizer utility.

Test Strategy:
1. Test accent removal (Lindén → linden) and Hangul pass-through
2. Test punctuation normalization (E-Land → eland)
3. Test lowercase conversion and whitespace collapsing
4. Test club affix stripping for team names
5. Test country normalization
6. Test edge cases (empty strings, None, already normalized names)

Each test follows the pattern:
- Given: An input name with specific issues
- When: normalize() is called
- Then: Output matches expected normalized form
"""
import pytest
from sportsync.services.sync.utils.name_normalizer import (
    are_names_equal,
    extract_player_name_parts,
    normalize,
    normalize_country,
    normalize_team_name,
)


class TestNameNormalizer:
    """Test suite for name normalization functionality."""

    # Accent Removal Tests
    # ─────────────────────────────────────────────────────────────

    def test_removes_accents(self):
        """Should strip diacritics from latin names."""
        assert normalize("Gustav Ludwigsson Lindén") == "gustav ludwigsson linden"
        assert normalize("Matías Lacava") == "matias lacava"

    def test_keeps_hangul(self):
        """Should leave Hangul syllables intact after decomposition."""
        assert normalize("전북 현대") == "전북 현대"

    # Punctuation / Case / Whitespace Tests
    # ─────────────────────────────────────────────────────────────

    def test_removes_punctuation(self):
        """Should drop hyphens, periods and apostrophes."""
        assert normalize("Seoul E-Land FC") == "seoul eland fc"
        assert normalize("Min-Kyu Joo") == "minkyu joo"

    def test_lowercases_and_collapses_whitespace(self):
        """Should lowercase and collapse runs of whitespace."""
        assert normalize("  ULSAN   HD ") == "ulsan hd"

    # Team Name Tests
    # ─────────────────────────────────────────────────────────────

    def test_strips_club_affixes(self):
        """Should drop generic club affixes from team names."""
        assert normalize_team_name("FC Seoul") == "seoul"
        assert normalize_team_name("Daejeon Hana Citizen FC") == "daejeon hana citizen"

    def test_keeps_affix_only_name(self):
        """Should keep the name when it consists only of affixes."""
        assert normalize_team_name("FC") == "fc"

    # Country Tests
    # ─────────────────────────────────────────────────────────────

    def test_country_separators_ignored(self):
        """Should treat 'South-Korea' and 'South Korea' as equal."""
        assert normalize_country("South-Korea") == normalize_country("South Korea") == "southkorea"

    # Edge Cases
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_values(self, value):
        """Should return an empty string for missing names."""
        assert normalize(value) == ""

    def test_names_equal(self):
        """Should compare names after normalization and never match empties."""
        assert are_names_equal("Jeonbuk Hyundai Motors", "JEONBUK  hyundai motors")
        assert not are_names_equal("", "")
        assert not are_names_equal(None, None)

    def test_extract_name_parts(self):
        """Should split first token from the rest."""
        assert extract_player_name_parts("Joo Min-Kyu") == ("Joo", "Min-Kyu")
        assert extract_player_name_parts("Gustav Ludwigsson Lindén") == ("Gustav", "Ludwigsson Lindén")
        assert extract_player_name_parts("Juninho") == ("Juninho", "")
        assert extract_player_name_parts("") == ("", "")
