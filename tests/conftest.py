from __future__ import annotations

import base64
import json
from collections.abc import Callable

import httpx
import pytest

from reposcope.github import GitHubClient

Responder = Callable[[httpx.Request], httpx.Response]


def user_payload(login: str = "octocat", **overrides) -> dict:
    payload = {
        "login": login,
        "name": "The Octocat",
        "bio": None,
        "public_repos": 8,
        "followers": 20,
        "following": 3,
        "created_at": "2011-01-25T18:44:36Z",
        "avatar_url": f"https://avatars.example/{login}",
        "html_url": f"https://github.com/{login}",
    }
    payload.update(overrides)
    return payload


def repo_payload(name: str, stars: int = 0, language: str | None = None, forks: int = 0) -> dict:
    return {
        "name": name,
        "language": language,
        "stargazers_count": stars,
        "forks_count": forks,
        "updated_at": "2024-05-01T00:00:00Z",
        "description": None,
    }


def contents_payload(text: str) -> dict:
    return {
        "encoding": "base64",
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


def package_json(*deps: str, section: str = "dependencies") -> dict:
    return contents_payload(json.dumps({section: {dep: "*" for dep in deps}}))


class FakeGitHub:
    """In-memory stand-in for api.github.com keyed on request path."""

    def __init__(self) -> None:
        self.routes: dict[str, Responder] = {}
        self.requests: list[httpx.Request] = []
        self.default: Responder = lambda request: httpx.Response(404, json={"message": "Not Found"})

    def add(self, path: str, json=None, status: int = 200, headers: dict | None = None) -> None:
        self.routes[path] = lambda request: httpx.Response(status, json=json, headers=headers)

    def add_responder(self, path: str, responder: Responder) -> None:
        self.routes[path] = responder

    def add_repos(self, login: str, pages: list[list[dict]]) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params.get("page", "1"))
            data = pages[page - 1] if page <= len(pages) else []
            return httpx.Response(200, json=data)

        self.routes[f"/users/{login}/repos"] = responder

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get(request.url.path, self.default)
        return responder(request)


@pytest.fixture
def fake() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def client(fake: FakeGitHub):
    with GitHubClient(transport=httpx.MockTransport(fake.handler)) as github:
        yield github
