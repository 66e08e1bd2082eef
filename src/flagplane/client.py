"""Reader client for the flag snapshot endpoint.

Applications poll the responder with :meth:`FlagClient.refresh` and evaluate
flags locally. Requests are conditional on the last ``ETag`` so unchanged
snapshots cost a ``304``.
"""

from __future__ import annotations

import logging
import zlib
from typing import Any

import requests

from flagplane.models import DEFAULT_SCOPE

logger = logging.getLogger(__name__)


class FlagClient:
    """Client for a flagplane responder.

    Scopes are searched in the order given, then the default scope, so a
    ``prod`` value overrides the default for readers configured with
    ``scopes=["prod"]``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        endpoint: str = "/flagplane.json",
        json_root: str = "flagplane",
        scopes: list[str] | None = None,
        timeout: float = 5.0,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Base URL of the responder
            endpoint: Snapshot endpoint path
            json_root: Root key of the served document
            scopes: Scopes to search before the default scope
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.endpoint = endpoint
        self.json_root = json_root
        self.scopes = [s for s in (scopes or []) if s != DEFAULT_SCOPE] + [DEFAULT_SCOPE]
        self.timeout = timeout
        self.session = requests.Session()

        self._etag: str | None = None
        self._features: dict[str, dict[str, Any]] = {}
        self._current_sha = ""

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.endpoint}"

    @property
    def current_sha(self) -> str:
        return self._current_sha

    @property
    def features(self) -> dict[str, dict[str, Any]]:
        """Last fetched values grouped by scope."""
        return self._features

    def refresh(self) -> bool:
        """Fetch the snapshot if it changed.

        On failure the previous snapshot is kept.

        Returns:
            True if a new snapshot was loaded
        """
        headers = {"If-None-Match": self._etag} if self._etag else {}
        try:
            response = self.session.get(self.url, headers=headers, timeout=self.timeout)
            if response.status_code == 304:
                return False
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Snapshot refresh failed: {e}")
            return False

        root = data.get(self.json_root, {})
        self._features = root.get("features", {})
        self._current_sha = root.get("info", {}).get("current_sha", "")
        self._etag = response.headers.get("ETag")
        return True

    def lookup(self, name: str) -> Any:
        """Value of ``name`` in the first scope defining it, else None."""
        for scope in self.scopes:
            values = self._features.get(scope, {})
            if name in values:
                return values[name]
        return None

    def is_available(self, name: str) -> bool:
        """True only for boolean flags set to true."""
        return self.lookup(name) is True

    def is_available_for_id(self, name: str, id_: int | str) -> bool:
        """Evaluate a flag for one identifier.

        Percentile flags bucket ``id_`` by CRC32 into 0-99 and enable the
        flag for buckets below ``value * 100``.
        """
        value = self.lookup(name)
        if isinstance(value, bool):
            return value
        if not isinstance(value, (int, float)):
            return False
        bucket = zlib.crc32(str(id_).encode("utf-8")) % 100
        return bucket < value * 100

    def scale_value(self, name: str, minimum: float, maximum: float) -> float:
        """Scale a percentile flag into ``[minimum, maximum]``."""
        value = self.lookup(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return minimum
        return minimum + (maximum - minimum) * float(value)
