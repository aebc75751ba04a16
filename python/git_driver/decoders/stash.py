"""
Stash list decoder for ``git stash list --format=STASH_FORMAT``.

Stash subjects read ``On <branch>: <message>`` or
``WIP on <branch>: <sha> <subject>``; the branch is recovered from that
fragment when present.
"""

import re
from typing import List, Optional

from ..models import StashRecord
from .common import FIELD_SEPARATOR, non_empty_lines, parse_epoch

STASH_FORMAT = "%gd|%ct|%gs"
STASH_FIELD_COUNT = 3

_INDEX_PATTERN = re.compile(r"\{(\d+)\}")
_BRANCH_PATTERN = re.compile(r"\b[Oo]n ([^:\s]+):\s*")


def decode_stash(line: str, position: int = 0) -> Optional[StashRecord]:
    """
    Decode one stash line.

    ``position`` is used as the index when the slot name carries none.
    """
    fields = line.split(FIELD_SEPARATOR, STASH_FIELD_COUNT - 1)
    if len(fields) < STASH_FIELD_COUNT or not fields[0]:
        return None

    name, epoch, subject = fields
    index_match = _INDEX_PATTERN.search(name)
    index = int(index_match.group(1)) if index_match else position

    branch = None
    message = subject.strip()
    if branch_match := _BRANCH_PATTERN.search(subject):
        branch = branch_match.group(1)
        message = subject[branch_match.end():].strip()

    return StashRecord(
        name=name,
        message=message,
        index=index,
        timestamp=parse_epoch(epoch),
        branch=branch,
    )


def decode_stashes(text: str) -> List[StashRecord]:
    stashes = []
    for position, line in enumerate(non_empty_lines(text)):
        stash = decode_stash(line, position)
        if stash is not None:
            stashes.append(stash)
    return stashes
