from __future__ import annotations

from keyshare.core.config import Settings
from keyshare.services.purger import CachePurger

BASE_URL = "https://files.example.com"


class RecordingPurger(CachePurger):
    """Purger that remembers scheduled URLs instead of calling a CDN."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.scheduled: list[str] = []

    def schedule(self, url: str):
        self.scheduled.append(url)
        return None


async def body(*parts: bytes):
    for part in parts:
        yield part


def path_of(url: str) -> str:
    assert url.startswith(BASE_URL + "/")
    return url[len(BASE_URL) + 1:]
