"""Cheap, deterministic size estimate for export text."""

from __future__ import annotations

CHARS_PER_TOKEN = 4


def utf16_units(text: str) -> int:
    """Length of `text` in UTF-16 code units (astral characters count twice)."""
    return len(text.encode("utf-16-le", errors="surrogatepass")) // 2


def tokens_for_units(units: int) -> int:
    """Budget units for a UTF-16 length: `ceil(units / 4)`."""
    return -(-units // CHARS_PER_TOKEN)


def estimate_tokens(text: str) -> int:
    """Estimate the token cost of `text`.

    This is `ceil(len / 4)` with the length measured in UTF-16 code units. It
    is not the exact count of any model's tokenizer.

    Args:
        text (str): the text to measure

    Returns:
        int: the estimated cost, 0 for the empty string
    """
    return tokens_for_units(utf16_units(text))
