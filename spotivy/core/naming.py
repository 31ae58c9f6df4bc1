"""Filesystem-friendly names for playlist folders and media files."""

import re

_DASHED = re.compile(r'[\\/*<>]')
_REMOVED = re.compile(r'[?:]')


def sanitize(name: str) -> str:
    """
    Map a display string to a path segment that is legal on common filesystems.

    Only reserved characters are touched; distinct names may collide.
    """
    name = _DASHED.sub("-", name)
    name = name.replace('"', "'")
    return _REMOVED.sub("", name)
