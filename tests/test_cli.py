from __future__ import annotations

import json

import httpx
import pytest

from reposcope import cli
from reposcope.config import Config
from reposcope.github import GitHubClient

from .conftest import package_json, repo_payload, user_payload


@pytest.fixture
def wired(fake, monkeypatch):
    """Point the CLI's client at the fake upstream."""

    def factory(token=None, **kwargs):
        kwargs.pop("base_url", None)
        return GitHubClient(token, transport=httpx.MockTransport(fake.handler), **kwargs)

    monkeypatch.setattr(cli, "GitHubClient", factory)
    for name in ("GITHUB_TOKEN", "REPOSCOPE_TOP_N", "REPOSCOPE_PROBE_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    return fake


def test_profile_json_output(wired, capsys) -> None:
    wired.add("/users/octocat", json=user_payload())
    wired.add_repos("octocat", [[repo_payload("web", stars=3, language="TypeScript"), repo_payload("cli", stars=8, language="Go")]])
    wired.add("/repos/octocat/web/contents/package.json", json=package_json("next", "mongoose"))

    assert cli.main(["profile", "octocat", "--json", "--top", "1"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["profile"]["login"] == "octocat"
    assert [r["name"] for r in data["repositories"]] == ["cli"]
    assert data["contributions"]["stars"] == 11
    assert data["tech_stack"]["frameworks"] == ["Next.js", "React"]
    assert data["tech_stack"]["databases"] == ["MongoDB"]


def test_profile_text_output(wired, capsys) -> None:
    wired.add("/users/octocat", json=user_payload(bio="Loves cats"))
    wired.add_repos("octocat", [[repo_payload("hello", stars=2, language="Python")]])

    assert cli.main(["profile", "octocat"]) == 0

    out = capsys.readouterr().out
    assert "octocat (The Octocat)" in out
    assert "Loves cats" in out
    assert "hello" in out
    assert "Python" in out


def test_compare_json_output(wired, capsys) -> None:
    for login in ("alice", "bob"):
        wired.add(f"/users/{login}", json=user_payload(login))
        wired.add_repos(login, [[repo_payload(f"{login}-repo", stars=1)]])

    assert cli.main(["compare", "alice", "bob", "--json"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert [d["profile"]["login"] for d in data] == ["alice", "bob"]


@pytest.mark.parametrize("status", [404, 403, 500])
def test_upstream_errors_exit_with_status_one(wired, status) -> None:
    wired.add("/users/octocat", json={"message": "nope"}, status=status)
    assert cli.main(["profile", "octocat"]) == 1


def test_blank_username_exits_with_status_one(wired) -> None:
    assert cli.main(["profile", "  "]) == 1
    assert wired.requests == []


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 1
    assert "usage: reposcope" in capsys.readouterr().out


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "abc")
    monkeypatch.setenv("REPOSCOPE_TOP_N", "3")
    monkeypatch.setenv("REPOSCOPE_PROBE_LIMIT", "2")
    monkeypatch.setenv("REPOSCOPE_PROBE_CONCURRENCY", "1")
    monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example/api/v3")

    config = Config.from_env()

    assert config == Config(
        github_token="abc",
        api_url="https://ghe.example/api/v3",
        top_n=3,
        probe_limit=2,
        probe_concurrency=1,
    )


def test_config_defaults(monkeypatch) -> None:
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_API_URL",
        "REPOSCOPE_TOP_N",
        "REPOSCOPE_PROBE_LIMIT",
        "REPOSCOPE_PROBE_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)

    assert Config.from_env() == Config()


@pytest.mark.parametrize("flag", ["--top", "--probe-limit"])
def test_negative_limits_are_rejected(wired, flag) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["profile", "octocat", flag, "-1"])
    assert excinfo.value.code == 2
    assert wired.requests == []
