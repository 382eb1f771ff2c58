"""
Field lookups on serialised JSON objects without building a parse tree.

This is only a rudimentary scanner, good enough for PNMP reports and
nothing else. Keys are matched case-insensitively anywhere in the text,
including inside values, and the first match wins. Arrays are expected
to be flat lists of flat objects.
"""

import re
from functools import lru_cache
from typing import Iterator, Optional, Tuple

DEFAULT_MAX_LEN = 79

_BARE_VALUE = re.compile(r"[-.A-Za-z0-9]*")


@lru_cache(maxsize=256)
def _key_pattern(name: str):
    return re.compile(re.escape(f'"{name}"'), re.IGNORECASE | re.ASCII)


def find_key(blob: str, name: str, start: int = 0) -> Optional[int]:
    """
    Locate the value belonging to a quoted key.

    Args:
        blob: Serialised object text
        name: Key name without quotes
        start: Offset to begin searching from

    Returns:
        Offset of the first non-space character after the colon, or
        None if the key or a following colon is missing
    """
    match = _key_pattern(name).search(blob, start)
    if match is None:
        return None

    colon = blob.find(":", match.end())
    if colon < 0:
        return None

    pos = colon + 1
    while pos < len(blob) and blob[pos].isspace():
        pos += 1
    return pos


def find_value(
    blob: str,
    name: str,
    max_len: int = DEFAULT_MAX_LEN,
    start: int = 0
) -> Optional[Tuple[str, int]]:
    """
    Extract a scalar value and the offset just past it.

    Quoted values are copied up to the next quote with no escape
    processing. Bare values are the run of letters, digits, '-' and '.'
    at the value position. Either way the result is cut to max_len.

    Returns:
        (value, end) or None if the key is missing
    """
    pos = find_key(blob, name, start)
    if pos is None:
        return None

    if pos < len(blob) and blob[pos] == '"':
        end = blob.find('"', pos + 1)
        if end < 0:
            end = len(blob)
        value = blob[pos + 1:end]
    else:
        end = _BARE_VALUE.match(blob, pos).end()
        value = blob[pos:end]

    return value[:max(max_len, 0)], end + 1


def get_value(
    blob: str,
    name: str,
    max_len: int = DEFAULT_MAX_LEN,
    start: int = 0
) -> Optional[str]:
    """Extract a scalar value, or None if the key is missing."""
    found = find_value(blob, name, max_len, start)
    return found[0] if found else None


def find_array(blob: str, name: str, start: int = 0) -> Optional[int]:
    """Return the offset of the '[' opening the named array, or None."""
    pos = find_key(blob, name, start)
    if pos is None or pos >= len(blob) or blob[pos] != "[":
        return None
    return pos


def _scan_to(blob: str, pos: int, wanted: str) -> int:
    # Stops at the wanted character or the end of the array
    while pos < len(blob) and blob[pos] not in (wanted, "]"):
        pos += 1
    return pos


def _copy_element(blob: str, start: int, max_len: int) -> str:
    close = blob.find("}", start)
    end = len(blob) if close < 0 else close + 1
    return blob[start:min(end, start + max_len)]


def next_element(
    blob: str,
    cursor: int,
    max_len: int = 1023
) -> Optional[Tuple[str, int]]:
    """
    Step from the element at cursor to the one after it.

    Skips to the '}' closing the current element, then to the '{'
    opening the next. Braces nested inside an element are not
    understood, and elements longer than max_len are cut short.

    Args:
        blob: Serialised object text
        cursor: Offset within the current element (or of its '{')
        max_len: Maximum characters of element text to return

    Returns:
        (element_text, offset_of_its_opening_brace) or None at the end
        of the array
    """
    pos = _scan_to(blob, cursor, "}")
    if pos >= len(blob) or blob[pos] != "}":
        return None

    pos = _scan_to(blob, pos, "{")
    if pos >= len(blob) or blob[pos] != "{":
        return None

    return _copy_element(blob, pos, max_len), pos


def iter_elements(
    blob: str,
    array_pos: int,
    max_len: int = 1023
) -> Iterator[str]:
    """Yield each element of the flat array whose '[' is at array_pos."""
    pos = _scan_to(blob, array_pos + 1, "{")
    if pos >= len(blob) or blob[pos] != "{":
        return

    yield _copy_element(blob, pos, max_len)

    found = next_element(blob, pos, max_len)
    while found is not None:
        element, pos = found
        yield element
        found = next_element(blob, pos, max_len)
