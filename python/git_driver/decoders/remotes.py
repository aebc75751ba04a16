"""
Remote list decoder for ``git remote -v``.

Each remote appears twice, ``name<TAB>url (fetch)`` and
``name<TAB>url (push)``; the two lines are merged into one record.
"""

from typing import Dict, List

from ..models import RemoteRecord
from .common import non_empty_lines

REMOTE_ARGS = ("remote", "-v")


def decode_remotes(text: str) -> List[RemoteRecord]:
    urls: Dict[str, Dict[str, str]] = {}
    for line in non_empty_lines(text):
        parts = line.split()
        if len(parts) < 2:
            continue
        name, url = parts[0], parts[1]
        kind = parts[2].strip("()") if len(parts) > 2 else "fetch"
        urls.setdefault(name, {})[kind] = url

    return [
        RemoteRecord(
            name=name,
            url=entry.get("fetch", entry.get("push", "")),
            push_url=entry.get("push", entry.get("fetch", "")),
        )
        for name, entry in urls.items()
    ]
