"""Text/binary classification of file contents."""

from __future__ import annotations

from typing import Literal

Classification = Literal["text", "binary"]


def is_binary(data: bytes) -> bool:
    """Return ``True`` if *data* contains a null byte.

    Null bytes practically never appear in UTF-8/ASCII source text but are
    common in compiled and media formats.  Empty content is text.
    """
    return b"\x00" in data


def classify(data: bytes) -> Classification:
    """Classify *data* as ``"text"`` or ``"binary"``."""
    return "binary" if is_binary(data) else "text"
