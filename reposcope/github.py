from __future__ import annotations

import base64
import re
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from reposcope.errors import NotFound, RateLimited, UpstreamError

PAGE_SIZE = 100

_LINK_LAST_PAGE = re.compile(r"[?&]page=(\d+)[^>]*>;\s*rel=\"last\"")


def _segment(value: str) -> str:
    return quote(value, safe="")


class GitHubClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "reposcope",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.debug("No GitHub token configured, using the unauthenticated rate limit")

        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # -- context manager ---------------------------------------------------

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- transport ----------------------------------------------------------

    def _request(self, path: str, params: dict | None = None) -> httpx.Response:
        try:
            resp = self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub request to {path} failed: {exc}") from exc

        if resp.status_code == 404:
            raise NotFound(f"GitHub resource not found: {path}", status_code=404)
        if resp.status_code in (403, 429):
            raise RateLimited(
                "GitHub API rate limit exceeded. Please try again later.",
                status_code=resp.status_code,
            )
        if not resp.is_success:
            raise UpstreamError(
                f"GitHub API error on {path}: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        return resp

    def get(self, path: str, params: dict | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body.

        Raises ``NotFound`` on 404, ``RateLimited`` on 403/429 and
        ``UpstreamError`` for everything else that is not a success,
        including network failures and bodies that are not JSON.
        """
        resp = self._request(path, params)
        if resp.status_code == 202 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(f"GitHub returned invalid JSON for {path}") from exc

    def count(self, path: str, params: dict | None = None) -> int:
        """Count items of a list endpoint queried with ``per_page=1``.

        Uses the ``rel="last"`` page of the Link header, falling back to
        the length of the returned page.
        """
        resp = self._request(path, params)
        match = _LINK_LAST_PAGE.search(resp.headers.get("Link", ""))
        if match:
            return int(match.group(1))
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"GitHub returned invalid JSON for {path}") from exc
        return len(data) if isinstance(data, list) else 0

    # -- public API ---------------------------------------------------------

    def get_user(self, login: str) -> dict:
        return self.get(f"/users/{_segment(login)}")

    def get_repos(self, login: str, per_page: int = PAGE_SIZE) -> list[dict]:
        """Fetch every repository of ``login``, most recently updated first.

        Stops at an empty page or at the first page shorter than
        ``per_page``.
        """
        repos: list[dict] = []
        page = 1

        while True:
            data = self.get(
                f"/users/{_segment(login)}/repos",
                params={"sort": "updated", "per_page": per_page, "page": page},
            )
            if data is None:
                raise UpstreamError(f"Empty reply for repository page {page} of {login}")
            if not isinstance(data, list):
                raise UpstreamError(f"Unexpected repository page for {login}")
            if not data:
                break

            repos.extend(data)
            logger.info("Fetched page {} - {} repos", page, len(data))
            if len(data) < per_page:
                break
            page += 1

        return repos

    def get_file_text(self, owner: str, repo: str, path: str) -> str | None:
        """Return the decoded text of a repository file, or None if the
        payload carries no inline content (directories, submodules)."""
        data = self.get(f"/repos/{_segment(owner)}/{_segment(repo)}/contents/{path}")
        if not isinstance(data, dict) or not data.get("content"):
            return None
        if data.get("encoding", "base64") != "base64":
            return None
        try:
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        except (TypeError, ValueError):
            logger.debug("Undecodable content for {}/{}/{}", owner, repo, path)
            return None

    def close(self) -> None:
        self._client.close()
