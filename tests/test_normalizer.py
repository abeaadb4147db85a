from __future__ import annotations

import pytest

from spam_detector.utils.normalizer import (
    ASCII_CHARACTER_BY_CYRILLIC_HOMOGLYPH,
    INVISIBLE_UNICODE_CHARACTERS,
    UNICODE_HOMOGLYPHS_BY_ASCII_CHARACTER,
    normalize_char,
    normalize_name,
    normalize_text,
    normalized_token_hash,
    token_hash,
)


class TestNormalizeText:
    @pytest.mark.parametrize("text", ["Hello-World_123!", "USDT", "uniswap", "Wrapped.Ether(v2)"])
    def test_plain_ascii_is_lowercased(self, text):
        assert normalize_text(text) == text.lower()

    def test_unicode_homoglyphs_fold_to_ascii(self):
        for ascii_char, glyphs in UNICODE_HOMOGLYPHS_BY_ASCII_CHARACTER.items():
            for glyph in glyphs:
                assert normalize_char(glyph) == ascii_char, glyph

    def test_cyrillic_homoglyphs_fold_to_ascii(self):
        for glyph, ascii_char in ASCII_CHARACTER_BY_CYRILLIC_HOMOGLYPH.items():
            assert normalize_char(glyph) == ascii_char, glyph

    def test_invisible_characters_are_stripped(self):
        for char in INVISIBLE_UNICODE_CHARACTERS:
            assert normalize_text(f"a{char}b") == "ab", hex(ord(char))

    def test_spaces_are_stripped(self):
        assert normalize_text("Tornado Cash") == "tornadocash"

    def test_preserve_case_reapplies_ascii_uppercase(self):
        assert normalize_text("Bооm", preserve_case=True) == "Boom"

    def test_preserve_case_keeps_lowercase_homoglyphs_lower(self):
        # Cyrillic capital letters are not ASCII uppercase
        assert normalize_text("Аbc", preserve_case=True) == "abc"


class TestNormalizeName:
    def test_short_capitalized_name_preserves_case(self):
        assert normalize_name("Boom") == "Boom"

    def test_all_caps_does_not_preserve_case(self):
        assert normalize_name("BOOM") == "boom"

    def test_lowercase_stays_lowercase(self):
        assert normalize_name("boom") == "boom"

    def test_long_or_camel_case_names_are_lowercased(self):
        assert normalize_name("DeNYC") == "denyc"
        assert normalize_name("Tornado Cash") == "tornadocash"

    def test_two_char_name_is_lowercased(self):
        # one uppercase and a single other character
        assert normalize_name("Ab") == "ab"


class TestTokenHash:
    def test_token_hash_format(self):
        assert token_hash("Tether", "USDT") == "Tether (USDT)"

    def test_normalized_token_hash(self):
        assert normalized_token_hash("Tоrnado Cаsh", "CASH") == "tornadocash (cash)"
