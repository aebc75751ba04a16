"""
Tag list decoder for ``git for-each-ref refs/tags --format=TAG_FORMAT``.
"""

from typing import List, Optional

from ..models import TagRecord
from .common import FIELD_SEPARATOR, non_empty_lines, parse_epoch

TAG_FORMAT = (
    "%(refname:short)|%(objectname:short)|%(*objectname:short)|"
    "%(objecttype)|%(creatordate:unix)|%(contents:subject)"
)
TAG_REFS = "refs/tags"
TAG_FIELD_COUNT = 6


def decode_tag(line: str) -> Optional[TagRecord]:
    fields = line.split(FIELD_SEPARATOR, TAG_FIELD_COUNT - 1)
    if len(fields) < TAG_FIELD_COUNT or not fields[0]:
        return None

    name, object_id, peeled_id, object_type, created, subject = fields
    annotated = object_type == "tag"
    return TagRecord(
        name=name,
        # Annotated tags point at a tag object; report the commit behind it.
        commit_id=peeled_id or object_id,
        message=subject if annotated else "",
        is_annotated=annotated,
        timestamp=parse_epoch(created) if created.strip() else None,
    )


def decode_tags(text: str) -> List[TagRecord]:
    tags = []
    for line in non_empty_lines(text):
        tag = decode_tag(line)
        if tag is not None:
            tags.append(tag)
    return tags
