"""
Commit log decoder.

The log is requested with ``LOG_FORMAT`` and ``-z`` so records are separated
by a single NUL byte; splitting on newlines is not safe. Each record has
seven ``|``-separated fields: full id, short id, author name, author email,
subject, epoch seconds, space-separated parent ids.

The format string and this decoder change together.
"""

from typing import List, Optional

from loguru import logger

from ..models import RevisionRecord
from .common import FIELD_SEPARATOR, RECORD_SEPARATOR, parse_epoch

LOG_FORMAT = "%H|%h|%an|%ae|%s|%ct|%P"
LOG_FIELD_COUNT = 7
# ``show`` appends the full message after a NUL so it may contain anything.
DETAIL_FORMAT = LOG_FORMAT + "%x00%B"


def split_revision_fields(record: str) -> Optional[List[str]]:
    """
    Split one record into its seven fields.

    The subject may itself contain ``|``, so the four leading fields are taken
    from the left and the two trailing fields from the right. Records with
    fewer than seven fields give None.
    """
    head = record.split(FIELD_SEPARATOR, 4)
    if len(head) < 5:
        return None
    tail = head[4].rsplit(FIELD_SEPARATOR, 2)
    if len(tail) < 3:
        return None
    return head[:4] + tail


def decode_revision(record: str, message: str = "") -> Optional[RevisionRecord]:
    """Decode one log record, or None if it is malformed."""
    record = record.strip("\n")
    fields = split_revision_fields(record)
    if fields is None:
        if record:
            logger.debug(f"Discarding malformed log record: {record[:80]!r}")
        return None

    full_id, short_id, name, email, subject, epoch, parents = fields
    if not full_id:
        return None

    return RevisionRecord(
        id=full_id,
        short_id=short_id,
        author_name=name,
        author_email=email,
        subject=subject,
        timestamp=parse_epoch(epoch),
        parents=tuple(parents.split()),
        message=message,
    )


def decode_log(text: str) -> List[RevisionRecord]:
    """Decode a NUL-separated batch; malformed records are dropped individually."""
    revisions = []
    for record in text.split(RECORD_SEPARATOR):
        revision = decode_revision(record)
        if revision is not None:
            revisions.append(revision)
    return revisions


def decode_revision_detail(text: str) -> Optional[RevisionRecord]:
    """Decode ``git show -s --format=DETAIL_FORMAT`` output including the body."""
    header, _, body = text.partition(RECORD_SEPARATOR)
    return decode_revision(header, message=body.strip("\n"))
