from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class Profile:
    """Snapshot of a GitHub user record."""

    login: str
    name: str | None = None
    bio: str | None = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: str = ""
    avatar_url: str | None = None
    html_url: str | None = None

    @classmethod
    def from_github(cls, raw: dict) -> Profile:
        """Build from a ``GET /users/{login}`` payload."""
        return cls(
            login=raw["login"],
            name=raw.get("name"),
            bio=raw.get("bio"),
            public_repos=raw.get("public_repos") or 0,
            followers=raw.get("followers") or 0,
            following=raw.get("following") or 0,
            created_at=raw.get("created_at") or "",
            avatar_url=raw.get("avatar_url"),
            html_url=raw.get("html_url"),
        )


@dataclass(frozen=True)
class RepositorySummary:
    name: str
    language: str | None = None
    stars: int = 0
    forks: int = 0
    updated_at: str = ""
    description: str | None = None

    @classmethod
    def from_github(cls, raw: dict) -> RepositorySummary:
        return cls(
            name=raw["name"],
            language=raw.get("language"),
            stars=raw.get("stargazers_count") or 0,
            forks=raw.get("forks_count") or 0,
            updated_at=raw.get("updated_at") or "",
            description=raw.get("description"),
        )


@dataclass(frozen=True)
class TechStackFinding:
    frameworks: frozenset[str] = frozenset()
    databases: frozenset[str] = frozenset()
    tools: frozenset[str] = frozenset()

    def is_empty(self) -> bool:
        return not (self.frameworks or self.databases or self.tools)


@dataclass(frozen=True)
class Contributions:
    commits: int = 0
    prs: int = 0
    issues: int = 0
    stars: int = 0


@dataclass(frozen=True)
class LanguageShare:
    name: str
    repositories: int
    percentage: int


@dataclass(frozen=True)
class AggregatedProfile:
    profile: Profile
    repositories: tuple[RepositorySummary, ...]
    tech_stack: TechStackFinding
    contributions: Contributions
    total_repositories: int = 0
    total_forks: int = 0
    languages: tuple[LanguageShare, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """JSON-friendly rendering; label sets come out sorted."""
        data = asdict(self)
        data["tech_stack"] = {
            "frameworks": sorted(self.tech_stack.frameworks),
            "databases": sorted(self.tech_stack.databases),
            "tools": sorted(self.tech_stack.tools),
        }
        data["repositories"] = [asdict(r) for r in self.repositories]
        data["languages"] = [asdict(lang) for lang in self.languages]
        return data
