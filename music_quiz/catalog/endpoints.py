from __future__ import annotations

from typing import Iterable, List, Sequence
from urllib.parse import quote

from loguru import logger

DIRECT = ""

PUBLIC_CORS_PROXIES = (
    "https://api.allorigins.win/raw?url=",
    "https://corsproxy.io/?",
    "https://api.codetabs.com/v1/proxy?quest=",
)


class EndpointRotation:
    """Ordered relay endpoints with a shared cursor.

    An endpoint is either ``DIRECT`` (call the catalog as is) or a relay
    prefix that the url-encoded target is appended to. The cursor survives
    between requests so a relay that failed once is not tried first again.
    """

    def __init__(self, endpoints: Iterable[str] = (DIRECT,)) -> None:
        self._endpoints: List[str] = list(endpoints) or [DIRECT]
        self._index = 0

    @property
    def endpoints(self) -> Sequence[str]:
        return tuple(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    def current(self) -> str:
        return self._endpoints[self._index]

    def advance(self) -> None:
        self._index = (self._index + 1) % len(self._endpoints)
        logger.debug("Switched to catalog endpoint {}/{}", self._index + 1, len(self._endpoints))

    def wrap(self, target_url: str) -> str:
        endpoint = self.current()
        if endpoint == DIRECT:
            return target_url
        return endpoint + quote(target_url, safe="")
