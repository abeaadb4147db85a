"""Confusable-character normalization for token names and symbols.

Scam tokens copy the name of a reputable token while swapping letters for
look-alike glyphs (Cyrillic "а" for Latin "a", "ċ" for "c") or padding it with
invisible characters. ``normalize_name`` folds all of these back to plain ASCII
so that names can be compared with simple string equality.
"""

from __future__ import annotations

import unicodedata
from types import MappingProxyType

UNICODE_HOMOGLYPHS_BY_ASCII_CHARACTER = MappingProxyType(
    {
        "2": ("ƻ",),
        "5": ("ƽ",),
        "a": ("à", "á", "â", "ã", "ä", "å", "ɑ", "ạ", "ǎ", "ă", "ȧ", "ą", "ə"),
        "b": ("ʙ", "ɓ", "ḃ", "ḅ", "ḇ", "ƅ"),
        "c": ("ƈ", "ċ", "ć", "ç", "č", "ĉ", "ᴄ"),
        "d": ("ɗ", "đ", "ď", "ɖ", "ḑ", "ḋ", "ḍ", "ḏ", "ḓ"),
        "e": ("é", "è", "ê", "ë", "ē", "ĕ", "ě", "ė", "ẹ", "ę", "ȩ", "ɇ", "ḛ"),
        "f": ("ƒ", "ḟ"),
        "g": ("ɢ", "ɡ", "ġ", "ğ", "ǵ", "ģ", "ĝ", "ǧ", "ǥ"),
        "h": ("ĥ", "ȟ", "ħ", "ɦ", "ḧ", "ḩ", "ⱨ", "ḣ", "ḥ", "ḫ", "ẖ"),
        "i": ("í", "ì", "ï", "ı", "ɩ", "ǐ", "ĭ", "ỉ", "ị", "ɨ", "ȋ", "ī", "ɪ"),
        "j": ("ʝ", "ǰ", "ɉ", "ĵ"),
        "k": ("ḳ", "ḵ", "ⱪ", "ķ", "ᴋ"),
        "l": ("ɫ", "ł"),
        "m": ("ṁ", "ṃ", "ᴍ", "ɱ", "ḿ"),
        "n": ("ń", "ṅ", "ṇ", "ṉ", "ñ", "ņ", "ǹ", "ň", "ꞑ"),
        "o": ("ȯ", "ọ", "ỏ", "ơ", "ó", "ö", "ᴏ"),
        "p": ("ƿ", "ƥ", "ṕ", "ṗ"),
        "q": ("ʠ",),
        "r": ("ʀ", "ɼ", "ɽ", "ŕ", "ŗ", "ř", "ɍ", "ɾ", "ȓ", "ȑ", "ṙ", "ṛ", "ṟ"),
        "s": ("ʂ", "ś", "ṣ", "ṡ", "ș", "ŝ", "š", "ꜱ"),
        "t": ("ţ", "ŧ", "ṫ", "ṭ", "ț", "ƫ"),
        "u": (
            "ᴜ", "ǔ", "ŭ", "ü", "ʉ", "ù", "ú", "û", "ũ", "ū", "ų", "ư", "ů", "ű",
            "ȕ", "ȗ", "ụ",
        ),
        "v": ("ṿ", "ⱱ", "ᶌ", "ṽ", "ⱴ", "ᴠ"),
        "w": ("ŵ", "ẁ", "ẃ", "ẅ", "ⱳ", "ẇ", "ẉ", "ẘ", "ᴡ"),
        "x": ("ẋ", "ẍ"),
        "y": ("ʏ", "ý", "ÿ", "ŷ", "ƴ", "ȳ", "ɏ", "ỿ", "ẏ", "ỵ"),
        "z": ("ʐ", "ż", "ź", "ᴢ", "ƶ", "ẓ", "ẕ", "ⱬ"),
    }
)

ASCII_CHARACTER_BY_UNICODE_HOMOGLYPH = MappingProxyType(
    {
        glyph: ascii_char
        for ascii_char, glyphs in UNICODE_HOMOGLYPHS_BY_ASCII_CHARACTER.items()
        for glyph in glyphs
    }
)

CYRILLIC_HOMOGLYPH_BY_ASCII_CHARACTER = MappingProxyType(
    {
        "a": "а",
        "b": "ь",
        "c": "с",
        "d": "ԁ",
        "e": "е",
        "g": "ԍ",
        "h": "һ",
        "i": "і",
        "j": "ј",
        "k": "к",
        "l": "ӏ",
        "m": "м",
        "o": "о",
        "p": "р",
        "q": "ԛ",
        "s": "ѕ",
        "t": "т",
        "v": "ѵ",
        "w": "ԝ",
        "x": "х",
        "y": "у",
    }
)

ASCII_CHARACTER_BY_CYRILLIC_HOMOGLYPH = MappingProxyType(
    {glyph: ascii_char for ascii_char, glyph in CYRILLIC_HOMOGLYPH_BY_ASCII_CHARACTER.items()}
)

# Some of these are letters or marks by Unicode category and survive the
# separator/other filter, e.g. U+115F HANGUL CHOSEONG FILLER or U+1D159.
INVISIBLE_UNICODE_CHARACTERS = frozenset(
    chr(code)
    for code in (
        0x0009, 0x000A, 0x000B, 0x000C, 0x000D, 0x0020, 0x0085, 0x00A0, 0x00AD,
        0x034F, 0x061C, 0x070F, 0x115F, 0x1160, 0x1680, 0x17B4, 0x17B5, 0x180E,
        0x2000, 0x2001, 0x2002, 0x2003, 0x2004, 0x2005, 0x2006, 0x2007, 0x2008,
        0x2009, 0x200A, 0x200B, 0x200C, 0x200D, 0x200E, 0x200F, 0x2028, 0x2029,
        0x202F, 0x205F, 0x2060, 0x2061, 0x2062, 0x2063, 0x2064, 0x206A, 0x206B,
        0x206C, 0x206D, 0x206E, 0x206F, 0x2800, 0x3000, 0x3164, 0xFEFF, 0xFFA0,
        0x110B1, 0x1BCA0, 0x1BCA1, 0x1BCA2, 0x1BCA3, 0x1D159, 0x1D173, 0x1D174,
        0x1D175, 0x1D176, 0x1D177, 0x1D178, 0x1D179, 0x1D17A,
    )
)


def _is_ascii_upper(char: str) -> bool:
    return "A" <= char <= "Z"


def _is_stripped(char: str) -> bool:
    # Z* = separators, C* = control, format, surrogate, private use, unassigned
    return (
        unicodedata.category(char)[0] in ("Z", "C")
        or char in INVISIBLE_UNICODE_CHARACTERS
    )


def normalize_char(char: str) -> str:
    char = char.lower()
    char = "".join(ASCII_CHARACTER_BY_CYRILLIC_HOMOGLYPH.get(c, c) for c in char)
    char = "".join(ASCII_CHARACTER_BY_UNICODE_HOMOGLYPH.get(c, c) for c in char)
    return "".join(c for c in char if not _is_stripped(c))


def normalize_text(text: str, preserve_case: bool = False) -> str:
    """Fold confusable glyphs to ASCII and drop invisible characters.

    With ``preserve_case`` the original ASCII uppercase flags are re-applied
    to the surviving characters position by position.
    """
    normalized = [normalize_char(c) for c in text]

    if preserve_case:
        return "".join(
            n.upper() if _is_ascii_upper(original) else n
            for original, n in zip(text, normalized)
        )

    return "".join(normalized)


def normalize_name(name: str) -> str:
    # Boom -> preserve case
    # BOOM, boom -> do not preserve case
    # DeNYC, Tornado Cash -> do not preserve case
    upper_count = sum(1 for c in name if _is_ascii_upper(c))
    lower_count = len(name) - upper_count

    preserve_case = len(name) <= 4 and upper_count == 1 and lower_count > 1

    return normalize_text(name, preserve_case)


def token_hash(name: str, symbol: str) -> str:
    return f"{name} ({symbol})"


def normalized_token_hash(name: str, symbol: str) -> str:
    return token_hash(normalize_name(name), normalize_name(symbol))
