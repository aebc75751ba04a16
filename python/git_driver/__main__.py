"""
Main entry point for command-line execution of the git driver.
"""

import json
import sys
from typing import List, Optional

from loguru import logger

from .cli import setup_parser
from .config import load_config
from .exceptions import GitConfigError, GitException, GitRepositoryNotFound
from .logging_config import setup_logging
from .manager import GitManager


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function for command-line execution.

    Parses the arguments, runs the selected query and prints its records as
    JSON on stdout.

    Returns:
        int: 0 on success, 1 if git failed or a GitException was raised.
    """
    parser = setup_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        config = load_config(
            args.config,
            timeout_ms=args.timeout_ms,
            log_level="DEBUG" if args.verbose else None,
        )
    except GitConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, args.log_file)
    logger.debug(f"Command-line arguments: {args}")

    try:
        with GitManager(args.repo_dir, config=config) as manager:
            payload = args.func(manager, args)
            error = manager.last_error
    except GitRepositoryNotFound as e:
        logger.error(f"Git repository error: {e}")
        print(f"Git repository error: {e}", file=sys.stderr)
        return 1
    except GitException as e:
        logger.error(f"Git error: {e}")
        print(f"Git error: {e}", file=sys.stderr)
        return 1

    if error:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
