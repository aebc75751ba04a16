"""
Command-line interface for the git driver.

Every subcommand runs one query against a repository and returns records that
``__main__`` prints as JSON.
"""

import argparse
from typing import Any, Dict, List

from loguru import logger

from .manager import GitManager
from .models import LogOptions


def _records(items) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]


def cli_status(manager: GitManager, args) -> Dict[str, Any]:
    """Show branch and working tree status."""
    return manager.get_status().to_dict()


def cli_log(manager: GitManager, args) -> List[Dict[str, Any]]:
    """Show commit history."""
    options = LogOptions.NONE
    if args.merges:
        options |= LogOptions.SHOW_MERGES
    if args.first_parent:
        options |= LogOptions.FIRST_PARENT_ONLY
    if args.follow:
        options |= LogOptions.FOLLOW_RENAMES
    return _records(
        manager.get_commit_history(
            max_count=args.max_count,
            options=options,
            branch=args.branch or "",
            file_path=args.path or "",
        )
    )


def cli_branches(manager: GitManager, args) -> List[Dict[str, Any]]:
    """List branches."""
    return _records(manager.get_branches(include_remote=not args.local))


def cli_diff(manager: GitManager, args) -> List[Dict[str, Any]]:
    """Show working tree, staged or commit diffs."""
    if args.commit:
        return _records(manager.get_commit_diff_all(args.commit, args.path or ""))
    if args.path:
        return [manager.get_diff(args.path, staged=args.staged).to_dict()]
    return _records(manager.get_diff_all(staged=args.staged))


def cli_tags(manager: GitManager, args) -> List[Dict[str, Any]]:
    return _records(manager.get_tags())


def cli_stashes(manager: GitManager, args) -> List[Dict[str, Any]]:
    return _records(manager.get_stashes())


def cli_remotes(manager: GitManager, args) -> List[Dict[str, Any]]:
    return _records(manager.get_remotes())


def cli_info(manager: GitManager, args) -> Dict[str, Any]:
    """Show repository layout, HEAD and status."""
    logger.debug(f"Collecting repository info for {manager.repository_path}")
    return manager.get_repository_info().to_dict()


def setup_parser() -> argparse.ArgumentParser:
    """
    Set up the argument parser for the command line interface.

    Returns:
        argparse.ArgumentParser: Configured argument parser.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--repo-dir", "-d", default=".", help="Directory of the repository (default: .)"
    )
    common.add_argument(
        "--timeout-ms", type=int, help="Timeout for each git invocation in milliseconds"
    )
    common.add_argument("--config", help="JSON configuration file")
    common.add_argument("--log-file", help="Also write DEBUG logs to this file")
    common.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    parser = argparse.ArgumentParser(
        prog="git-driver",
        description="Query a git repository and print the decoded results as JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Working tree status:
  git-driver status --repo-dir ./my_repo

  # Last 10 commits touching a file, following renames:
  git-driver log -n 10 --path src/main.py --follow

  # Staged changes:
  git-driver diff --staged
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Query to run")

    parser_status = subparsers.add_parser(
        "status", parents=[common], help="Show the working tree status"
    )
    parser_status.set_defaults(func=cli_status)

    parser_log = subparsers.add_parser("log", parents=[common], help="Show commit history")
    parser_log.add_argument(
        "-n", "--max-count", type=int, default=100, help="Number of commits (default: 100)"
    )
    parser_log.add_argument("--branch", help="Revision to start from")
    parser_log.add_argument("--path", help="Only commits touching this path")
    parser_log.add_argument("--merges", action="store_true", help="Include merge commits")
    parser_log.add_argument(
        "--first-parent", action="store_true", help="Follow only the first parent"
    )
    parser_log.add_argument(
        "--follow", action="store_true", help="Follow renames of --path"
    )
    parser_log.set_defaults(func=cli_log)

    parser_branches = subparsers.add_parser(
        "branches", parents=[common], help="List branches"
    )
    parser_branches.add_argument(
        "--local", action="store_true", help="Only local branches"
    )
    parser_branches.set_defaults(func=cli_branches)

    parser_diff = subparsers.add_parser("diff", parents=[common], help="Show diffs")
    parser_diff.add_argument("--staged", action="store_true", help="Diff the index")
    parser_diff.add_argument("--path", help="Only this path")
    parser_diff.add_argument("--commit", help="Show the changes of this commit")
    parser_diff.set_defaults(func=cli_diff)

    for name, func, help_text in (
        ("tags", cli_tags, "List tags"),
        ("stashes", cli_stashes, "List stashes"),
        ("remotes", cli_remotes, "List remotes"),
        ("info", cli_info, "Show repository information"),
    ):
        subparser = subparsers.add_parser(name, parents=[common], help=help_text)
        subparser.set_defaults(func=func)

    return parser
