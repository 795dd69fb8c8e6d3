"""Command-line entry point for operating the matching core."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from vinculo.config.environment import EnvironmentConfig
from vinculo.config.exceptions import ConfigurationError
from vinculo.config.loader import load_config
from vinculo.config.models import AppConfig
from vinculo.domain.exceptions import MatchingError
from vinculo.domain.models import Actor, EntityKind, Role
from vinculo.logging import get_logger
from vinculo.logging.config import configure_logging
from vinculo.persistence.database import close_database, init_database
from vinculo.persistence.exceptions import PersistenceError
from vinculo.service import MatchingService

logger = get_logger(__name__, component="cli")

# Administrative actor used for toggle changes issued from the command line
CLI_ADMIN_USER_ID = 1


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > environment > config file.

    Args:
        config_path: Path to configuration file (None for default lookup)
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with log_level resolved

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vinculo",
        description="Vinculo - challenge/capacity matching core administration",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema if missing")

    toggle = subparsers.add_parser("toggle", help="Show or change the match system toggle")
    toggle.add_argument("state", choices=["on", "off", "status"])

    rank = subparsers.add_parser("rank", help="Rank the opposite side for one entity")
    rank.add_argument("kind", choices=[kind.value for kind in EntityKind])
    rank.add_argument("entity_id", type=int)

    stats = subparsers.add_parser("keyword-stats", help="Show the most popular challenge keywords")
    stats.add_argument("--limit", type=int, default=None)

    return parser


def _run_command(args: argparse.Namespace, service: MatchingService) -> List[str]:
    """Execute a subcommand and return the lines to print."""
    if args.command == "init-db":
        return ["Database schema is ready"]

    if args.command == "toggle":
        if args.state != "status":
            admin = Actor(user_id=CLI_ADMIN_USER_ID, role=Role.ADMIN)
            service.set_system_enabled(args.state == "on", admin)
        enabled = service.get_system_enabled()
        return [f"Match system is {'enabled' if enabled else 'disabled'}"]

    if args.command == "rank":
        matches = service.rank_matches(args.entity_id, args.kind)
        if not matches:
            return [f"No keyword overlap for {args.kind} {args.entity_id}"]
        return [
            f"{match.other_id}\tscore={match.score}\t{match.matched_keywords}\t{match.summary[:60]}"
            for match in matches
        ]

    if args.command == "keyword-stats":
        keywords = service.keyword_stats(args.limit)
        if not keywords:
            return ["No challenge keywords yet"]
        return [f"{keyword.challenge_popularity}\t{keyword.text}" for keyword in keywords]

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the vinculo CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Vinculo command starting",
            extra={
                "event": "cli.starting",
                "command": args.command,
                "log_level": env_config.log_level,
            },
        )

        init_database(env_config.database_url)

        try:
            for line in _run_command(args, MatchingService(app_config)):
                print(line)
        finally:
            close_database()

        logger.info(
            "Vinculo command completed",
            extra={"event": "cli.completed", "command": args.command},
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except MatchingError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.warning(
            f"Command rejected: {e}",
            extra={"event": "cli.rejected", "error_type": type(e).__name__},
        )
        return 2
    except PersistenceError as e:
        print(f"Database error: {e}", file=sys.stderr)
        logger.error(
            "Database failure",
            extra={"event": "cli.failed", "error_type": type(e).__name__},
            exc_info=True,
        )
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
