"""Reading, writing and splitting mark values on host elements."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Collection

    from sleevemark.domain.model import ElementId
    from sleevemark.domain.ports import HostDocument

MEP_MARK_ATTRIBUTE: Final[str] = "MEP Mark"
MARK_ATTRIBUTE: Final[str] = "Mark"

_TRAILING_DIGITS = re.compile(r"^(?P<prefix>.*?)(?P<digits>\d*)$")


def mark_attribute_for(document: HostDocument, element_id: ElementId) -> str:
    """Sleeves carry ``MEP Mark`` when the family defines it, ``Mark`` otherwise."""

    if document.has_attribute(element_id, MEP_MARK_ATTRIBUTE):
        return MEP_MARK_ATTRIBUTE
    return MARK_ATTRIBUTE


def read_mark(document: HostDocument, element_id: ElementId) -> str:
    value = document.read_attribute(element_id, mark_attribute_for(document, element_id))
    if value is None:
        return ""
    return str(value).strip()


def write_mark(document: HostDocument, element_id: ElementId, mark: str) -> None:
    document.write_attribute(element_id, mark_attribute_for(document, element_id), mark)


def clear_mark(document: HostDocument, element_id: ElementId) -> None:
    document.clear_attribute(element_id, mark_attribute_for(document, element_id))


def split_mark(mark: str, known_prefixes: Collection[str] = ()) -> tuple[str, str]:
    """Split ``mark`` into its prefix and trailing digit run.

    A configured prefix may itself end in digits, so the longest entry of
    ``known_prefixes`` that leaves only digits behind wins over the plain split.

    >>> split_mark("DCT007")
    ('DCT', '007')
    >>> split_mark("MEP")
    ('MEP', '')
    >>> split_mark("CHW2", known_prefixes={"CHW2"})
    ('CHW2', '')
    >>> split_mark("CHW2014", known_prefixes={"CHW2"})
    ('CHW2', '014')
    """

    cleaned = mark.strip()
    for prefix in sorted(known_prefixes, key=len, reverse=True):
        if not prefix or not cleaned.startswith(prefix):
            continue
        rest = cleaned[len(prefix) :]
        if not rest or rest.isdecimal():
            return prefix, rest

    match = _TRAILING_DIGITS.match(cleaned)
    if match is None:  # pragma: no cover - the pattern matches every string
        return mark, ""
    return match.group("prefix"), match.group("digits")


def mark_number(mark: str, known_prefixes: Collection[str] = ()) -> int | None:
    _, digits = split_mark(mark, known_prefixes)
    return int(digits) if digits else None


def format_mark(prefix: str, number: int, width: int) -> str:
    return f"{prefix}{str(number).zfill(width)}"
