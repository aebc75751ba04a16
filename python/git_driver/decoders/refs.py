"""
Branch list decoder for ``git for-each-ref --format=REF_FORMAT``.

Fields: short name, short object id, committer date, upstream short name,
upstream tracking clause, subject.
"""

from typing import Iterable, List, Optional, Tuple

from ..models import RefRecord, RevisionRecord
from .common import FIELD_SEPARATOR, non_empty_lines, parse_date, parse_tracking

REF_FORMAT = (
    "%(refname:short)|%(objectname:short)|%(committerdate:iso8601)|"
    "%(upstream:short)|%(upstream:track)|%(contents:subject)"
)
LOCAL_REFS = ("refs/heads",)
ALL_REFS = ("refs/heads", "refs/remotes")

REMOTE_REF_PREFIX = "refs/remotes/"
LOCAL_REF_PREFIX = "refs/heads/"
REF_FIELD_COUNT = 6


def split_remote(name: str, remotes: Iterable[str]) -> Tuple[bool, str]:
    """
    Decide whether a short ref name is remote-tracking.

    An explicit ``refs/remotes/`` prefix is stripped; otherwise a name is
    remote when it starts with ``<remote>/`` for one of the known remotes.
    """
    if name.startswith(REMOTE_REF_PREFIX):
        return True, name[len(REMOTE_REF_PREFIX):]
    if name.startswith(LOCAL_REF_PREFIX):
        return False, name[len(LOCAL_REF_PREFIX):]
    for remote in remotes:
        if name.startswith(remote + "/"):
            return True, name
    return False, name


def decode_ref(
    line: str,
    current_branch: Optional[str] = None,
    remotes: Iterable[str] = ("origin",),
) -> Optional[RefRecord]:
    """Decode one ref line, or None for malformed and symbolic ``<remote>/HEAD`` lines."""
    fields = line.split(FIELD_SEPARATOR, REF_FIELD_COUNT - 1)
    if len(fields) < REF_FIELD_COUNT or not fields[0]:
        return None

    raw_name, short_id, date, upstream, tracking, subject = fields
    remotes = tuple(remotes)
    is_remote, name = split_remote(raw_name, remotes)
    # for-each-ref prints origin/HEAD as plain "origin".
    if name in remotes or name.endswith("/HEAD"):
        return None

    ahead, behind = parse_tracking(tracking)
    last_commit = None
    if short_id:
        last_commit = RevisionRecord(
            id=short_id,
            short_id=short_id,
            author_name="",
            author_email="",
            subject=subject,
            timestamp=parse_date(date),
        )

    return RefRecord(
        name=name,
        full_name=(REMOTE_REF_PREFIX if is_remote else LOCAL_REF_PREFIX) + name,
        is_remote=is_remote,
        is_current=not is_remote and current_branch is not None and name == current_branch,
        upstream=upstream or None,
        ahead_count=ahead,
        behind_count=behind,
        last_commit=last_commit,
    )


def decode_refs(
    text: str,
    *,
    current_branch: Optional[str] = None,
    remotes: Iterable[str] = ("origin",),
) -> List[RefRecord]:
    remotes = tuple(remotes)
    refs = []
    for line in non_empty_lines(text):
        ref = decode_ref(line, current_branch, remotes)
        if ref is not None:
            refs.append(ref)
    return refs
