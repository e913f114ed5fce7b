from __future__ import annotations

import argparse
import json
import logging
import sys

from loguru import logger

from reposcope.aggregator import ProfileAggregator, compare
from reposcope.config import Config
from reposcope.errors import InvalidInput, NotFound, RateLimited, ReposcopeError
from reposcope.github import GitHubClient
from reposcope.models import AggregatedProfile


def _format_labels(labels: frozenset[str]) -> str:
    return ", ".join(sorted(labels)) if labels else "-"


def _print_profile(result: AggregatedProfile) -> None:
    p = result.profile
    c = result.contributions

    print(f"\n{'=' * 60}")
    print(f" {p.login}" + (f" ({p.name})" if p.name else ""))
    print(f"{'=' * 60}")
    if p.bio:
        print(f"  {p.bio}")
    print(f"  Joined            : {p.created_at or 'unknown'}")
    print(f"  Public repos      : {p.public_repos}")
    print(f"  Followers         : {p.followers}")
    print(f"  Following         : {p.following}")
    print(f"  Total stars       : {c.stars}")
    print(f"  Total forks       : {result.total_forks}")
    print(f"  Commits (latest)  : {c.commits}")
    print(f"  Pull requests     : {c.prs}")
    print(f"  Issues            : {c.issues}")
    print()

    if result.repositories:
        print(f"  [TOP] {len(result.repositories)} of {result.total_repositories} repositories:")
        for r in result.repositories:
            print(f"    ★{r.stars:<6} {r.name}  ({r.language or 'Unknown'})")
        print()

    if result.languages:
        print("  [LANGUAGES]")
        for lang in result.languages:
            print(f"    {lang.name:<16} {lang.percentage:>3}%  ({lang.repositories} repos)")
        print()

    print("  [TECH STACK]")
    print(f"    Frameworks : {_format_labels(result.tech_stack.frameworks)}")
    print(f"    Databases  : {_format_labels(result.tech_stack.databases)}")
    print(f"    Tools      : {_format_labels(result.tech_stack.tools)}")
    print()


def cmd_profile(config: Config, username: str, *, as_json: bool = False) -> None:
    """Aggregate one user and print the result."""
    with GitHubClient(config.github_token, base_url=config.api_url) as github:
        result = ProfileAggregator(github, config).aggregate(username)

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_profile(result)


def cmd_compare(config: Config, usernames: list[str], *, as_json: bool = False) -> None:
    """Aggregate several users concurrently and print them in order."""
    with GitHubClient(config.github_token, base_url=config.api_url) as github:
        results = compare(github, usernames, config)

    if as_json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return

    for result in results:
        _print_profile(result)

    print(f"{'=' * 60}")
    print(" Comparison")
    print(f"{'=' * 60}")
    for result in results:
        print(
            f"  {result.profile.login:<20} ★{result.contributions.stars:<7} "
            f"followers {result.profile.followers:<7} repos {result.total_repositories}"
        )
    print()


class _InterceptHandler(logging.Handler):
    """Route stdlib logging (httpx, httpcore) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _setup_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a value >= 0, got {raw}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--json", action="store_true", help="Print the result as JSON")
    common.add_argument(
        "--top",
        type=_non_negative_int,
        default=None,
        help="Number of top repositories to keep (default: env REPOSCOPE_TOP_N or 10)",
    )
    common.add_argument(
        "--probe-limit",
        type=_non_negative_int,
        default=None,
        help="Recent repositories to scan for manifests (default: env REPOSCOPE_PROBE_LIMIT or 5)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        prog="reposcope",
        description="Summarize public GitHub profiles: repositories, tech stack and activity",
    )
    sub = parser.add_subparsers(dest="command")

    profile_p = sub.add_parser("profile", parents=[common], help="Analyze one GitHub user")
    profile_p.add_argument("username")

    compare_p = sub.add_parser("compare", parents=[common], help="Compare GitHub users side by side")
    compare_p.add_argument("usernames", nargs="+", metavar="username")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _setup_logging(args.verbose)

    config = Config.from_env()
    if args.top is not None:
        config.top_n = args.top
    if args.probe_limit is not None:
        config.probe_limit = args.probe_limit

    try:
        if args.command == "profile":
            cmd_profile(config, args.username, as_json=args.json)
        elif args.command == "compare":
            cmd_compare(config, args.usernames, as_json=args.json)
    except InvalidInput as exc:
        logger.error("{}", exc.message)
        return 1
    except NotFound:
        logger.error("GitHub user not found. Please check the username and try again.")
        return 1
    except RateLimited:
        logger.error("GitHub API rate limit exceeded. Please try again in a few minutes.")
        return 1
    except ReposcopeError as exc:
        logger.error("Failed to fetch GitHub data: {}. Please try again.", exc.message)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
