from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class Config:
    github_token: str = ""
    api_url: str = "https://api.github.com"
    top_n: int = 10
    probe_limit: int = 5
    probe_concurrency: int = 5

    @classmethod
    def from_env(cls) -> Config:
        load_dotenv()

        return cls(
            github_token=os.environ.get("GITHUB_TOKEN", ""),
            api_url=os.environ.get("GITHUB_API_URL", "https://api.github.com"),
            top_n=int(os.environ.get("REPOSCOPE_TOP_N", "10")),
            probe_limit=int(os.environ.get("REPOSCOPE_PROBE_LIMIT", "5")),
            probe_concurrency=int(os.environ.get("REPOSCOPE_PROBE_CONCURRENCY", "5")),
        )
