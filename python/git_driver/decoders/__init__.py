"""
Decoders for the text git prints.

Each module pairs one requested output format with the pure function that
decodes it; the two always change together.
"""

from .common import parse_date, parse_epoch, parse_tracking, unquote_path
from .diff import decode_diff, decode_diff_all, parse_hunk_header, split_file_diffs
from .log import (
    DETAIL_FORMAT,
    LOG_FORMAT,
    decode_log,
    decode_revision,
    decode_revision_detail,
)
from .refs import ALL_REFS, LOCAL_REFS, REF_FORMAT, decode_ref, decode_refs
from .remotes import REMOTE_ARGS, decode_remotes
from .stash import STASH_FORMAT, decode_stash, decode_stashes
from .status import STATUS_ARGS, decode_change, decode_status, parse_branch_header
from .tags import TAG_FORMAT, TAG_REFS, decode_tag, decode_tags

__all__ = [
    "parse_date",
    "parse_epoch",
    "parse_tracking",
    "unquote_path",
    "decode_diff",
    "decode_diff_all",
    "parse_hunk_header",
    "split_file_diffs",
    "DETAIL_FORMAT",
    "LOG_FORMAT",
    "decode_log",
    "decode_revision",
    "decode_revision_detail",
    "ALL_REFS",
    "LOCAL_REFS",
    "REF_FORMAT",
    "decode_ref",
    "decode_refs",
    "REMOTE_ARGS",
    "decode_remotes",
    "STASH_FORMAT",
    "decode_stash",
    "decode_stashes",
    "STATUS_ARGS",
    "decode_change",
    "decode_status",
    "parse_branch_header",
    "TAG_FORMAT",
    "TAG_REFS",
    "decode_tag",
    "decode_tags",
]
