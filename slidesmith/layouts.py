# slidesmith/layouts.py
"""
Pure helpers for layout-specific content handling.

Editing, PDF rendering and PPTX export all go through these so the
two-column split and the index arithmetic live in exactly one place.
"""
import math
from typing import List, Optional, Sequence, Tuple

from .schemas import SlideLayout

LEFT = "left"
RIGHT = "right"

# layouts whose content[0] is a single subtitle/description line
SUBTITLE_LAYOUTS = (SlideLayout.TITLE_SLIDE, SlideLayout.SECTION_HEADER)


def split_point(length: int) -> int:
    return math.ceil(length / 2)


def split_columns(content: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Left column gets ceil(n/2) entries, right gets the rest."""
    mid = split_point(len(content))
    return list(content[:mid]), list(content[mid:])


def column_to_absolute(column: str, local_index: int, length: int) -> Optional[int]:
    """Translate a column-local index into the flat content index, or None if out of range."""
    mid = split_point(length)
    if column == LEFT:
        if 0 <= local_index < mid:
            return local_index
        return None
    if column == RIGHT:
        if 0 <= local_index < length - mid:
            return mid + local_index
        return None
    raise ValueError(f"Unknown column: {column}")


def subtitle_of(layout: SlideLayout, content: Sequence[str]) -> Optional[str]:
    if layout in SUBTITLE_LAYOUTS and content and content[0]:
        return content[0]
    return None


def selection_after_move(selected: int, from_index: int, to_index: int) -> int:
    """
    Index of the previously selected slide after moving from_index to to_index.

    The moved slide follows the move; slides between the two positions
    (including the one at to_index) shift one step to close the gap.
    """
    if selected == from_index:
        return to_index
    if from_index < selected <= to_index:
        return selected - 1
    if to_index <= selected < from_index:
        return selected + 1
    return selected


def move_item(items: Sequence, from_index: int, to_index: int) -> list:
    out = list(items)
    moved = out.pop(from_index)
    out.insert(to_index, moved)
    return out
