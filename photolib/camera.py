"""Camera make/model normalisation and the grouping label derived from them."""

from __future__ import annotations

import re

UNKNOWN_CAMERA_LABEL = "Unknown camera"

# Same whitespace class the label rules were defined against: ASCII space, tab, newline, CR, form feed.
_SPACE_RUN = re.compile(r"[\t\n\f\r ]+")


def normalize_camera_field(s: str) -> str:
    """Trim and collapse internal whitespace runs to single ASCII spaces."""
    s = s.strip()
    if not s:
        return ""
    return _SPACE_RUN.sub(" ", s)


def camera_label_from_parts(make: str, model: str) -> str | None:
    """Build the grouping label from make and model.

    Returns None when both parts are empty after normalisation (the unknown bucket).
    When only one part is present it is used alone; otherwise they are joined by one space.
    """
    m = normalize_camera_field(make)
    o = normalize_camera_field(model)
    if not m and not o:
        return None
    if not m:
        return o
    if not o:
        return m
    return f"{m} {o}"