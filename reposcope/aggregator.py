from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from reposcope.config import Config
from reposcope.errors import InvalidInput, NotFound, ReposcopeError, UpstreamError
from reposcope.github import PAGE_SIZE, GitHubClient
from reposcope.models import (
    AggregatedProfile,
    Contributions,
    LanguageShare,
    Profile,
    RepositorySummary,
)
from reposcope.techstack import classify, probe_repository


def _best_effort(label: str, fetch: Callable[[], int]) -> int | None:
    try:
        return fetch()
    except ReposcopeError as exc:
        logger.warning("Could not fetch {}: {}", label, exc)
        return None


def language_shares(repos: Sequence[RepositorySummary]) -> tuple[LanguageShare, ...]:
    """Share of repositories per primary language, largest first."""
    counts = Counter(r.language for r in repos if r.language)
    total = sum(counts.values())
    if not total:
        return ()
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(
        LanguageShare(name=name, repositories=count, percentage=int(count * 100 / total + 0.5))
        for name, count in ordered
    )


class ProfileAggregator:
    def __init__(self, client: GitHubClient, config: Config | None = None) -> None:
        self.client = client
        self.config = config or Config()

    def aggregate(self, username: str) -> AggregatedProfile:
        """Fetch and assemble everything known about ``username``.

        Raises ``InvalidInput``, ``NotFound``, ``RateLimited`` or
        ``UpstreamError``. Manifest probes and contribution counters never
        raise; they degrade to empty sets and zero counts.
        """
        if not username or not username.strip():
            raise InvalidInput("Username cannot be empty")
        username = username.strip()

        raw_user = self.client.get_user(username)
        if not isinstance(raw_user, dict) or "login" not in raw_user:
            raise UpstreamError(f"Unexpected profile payload for {username}")
        profile = Profile.from_github(raw_user)
        logger.info("Found user {}", profile.login)

        try:
            raw_repos = self.client.get_repos(profile.login, per_page=PAGE_SIZE)
        except NotFound as exc:
            raise UpstreamError(
                f"Repository listing for {profile.login} failed: {exc}", status_code=404
            ) from exc
        repos = [RepositorySummary.from_github(raw) for raw in raw_repos]
        logger.info("Found {} repositories for {}", len(repos), profile.login)

        recent = repos[: max(0, self.config.probe_limit)]
        tech_stack = classify(self._probe_names(profile.login, recent))
        logger.info(
            "Tech stack for {}: {} frameworks, {} databases, {} tools",
            profile.login,
            len(tech_stack.frameworks),
            len(tech_stack.databases),
            len(tech_stack.tools),
        )

        contributions = self._contributions(profile.login, repos)

        ranked = sorted(repos, key=lambda r: r.stars, reverse=True)
        return AggregatedProfile(
            profile=profile,
            repositories=tuple(ranked[: max(0, self.config.top_n)]),
            tech_stack=tech_stack,
            contributions=contributions,
            total_repositories=len(repos),
            total_forks=sum(r.forks for r in repos),
            languages=language_shares(repos),
        )

    def _probe_names(self, owner: str, repos: Sequence[RepositorySummary]) -> frozenset[str]:
        if not repos:
            return frozenset()

        workers = max(1, min(self.config.probe_concurrency, len(repos)))
        logger.debug("Probing manifests of {} repos (concurrency={})", len(repos), workers)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            found = list(pool.map(lambda r: probe_repository(self.client, owner, r.name), repos))

        return frozenset().union(*found)

    def _contributions(self, owner: str, repos: Sequence[RepositorySummary]) -> Contributions:
        stars = sum(r.stars for r in repos)
        logger.info("Total stars for {}: {}", owner, stars)
        if not repos:
            return Contributions(stars=stars)

        # Only the most recently updated repository is queried.
        latest = repos[0].name
        base = f"/repos/{owner}/{latest}"

        def _commits() -> int:
            stats = self.client.get(f"{base}/stats/participation")
            if not isinstance(stats, dict):
                return 0
            return sum(stats.get("all") or [])

        params = {"state": "all", "per_page": 1}
        commits = _best_effort(f"participation stats for {latest}", _commits)
        issues = _best_effort(
            f"issues for {latest}", lambda: self.client.count(f"{base}/issues", params)
        )
        prs = _best_effort(
            f"pull requests for {latest}", lambda: self.client.count(f"{base}/pulls", params)
        )

        return Contributions(
            commits=commits or 0,
            prs=prs or 0,
            issues=issues or 0,
            stars=stars,
        )


def compare(
    client: GitHubClient, usernames: Sequence[str], config: Config | None = None
) -> tuple[AggregatedProfile, ...]:
    """Aggregate several users side by side.

    Each user runs as its own task with its own aggregator; results come
    back in argument order and the first failure (in that order) is
    raised.
    """
    if not usernames:
        raise InvalidInput("At least one username is required")
    for username in usernames:
        if not username or not username.strip():
            raise InvalidInput("Username cannot be empty")

    with ThreadPoolExecutor(max_workers=len(usernames)) as pool:
        futures = [
            pool.submit(ProfileAggregator(client, config).aggregate, username)
            for username in usernames
        ]
        return tuple(future.result() for future in futures)
