"""Node.js release lookup for the setup questionnaire."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional

import requests

logger = logging.getLogger(__name__)

NODE_INDEX_URL = "https://nodejs.org/dist/index.json"

FALLBACK_NODE_VERSIONS = [
    "20.14.0",  # Current LTS
    "18.20.2",  # Maintenance LTS
    "16.20.2",  # Maintenance LTS
    "21.7.3",   # Latest release
    "20.13.1",  # Previous minor
]


def parse_node_index(releases: Iterable[Dict[str, Any]], limit: int = 5) -> List[str]:
    """
    Pick versions to offer from the nodejs.org release index.

    The index is ordered newest first. The newest release of each LTS line
    comes first, followed by the newest release overall when it is not LTS.
    """
    lts: List[str] = []
    latest: Optional[str] = None
    seen_majors = set()

    for release in releases:
        version = str(release.get("version") or "").lstrip("v")
        if not version:
            continue
        if latest is None:
            latest = version if not release.get("lts") else ""
        major = version.split(".")[0]
        if release.get("lts") and major not in seen_majors:
            seen_majors.add(major)
            lts.append(version)

    versions = lts[: limit - 1] if latest else lts[:limit]
    if latest:
        versions.append(latest)
    return versions


class NodeVersionCatalog:
    """Fetches Node.js versions, falling back to a built-in list offline."""

    def __init__(
        self,
        url: str = NODE_INDEX_URL,
        session: Optional[requests.Session] = None,
        timeout: int = 10,
        limit: int = 5,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.limit = limit
        self.session = session or requests.Session()

        proxy = os.environ.get("HTTPS_PROXY") or os.environ.get("HTTP_PROXY")
        if proxy and session is None:
            self.session.proxies = {"http": proxy, "https": proxy}

    def versions(self) -> List[str]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            versions = parse_node_index(response.json(), limit=self.limit)
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch Node.js versions, using built-in list: {e}")
            return list(FALLBACK_NODE_VERSIONS)

        if not versions:
            logger.warning("Node.js release index was empty, using built-in list")
            return list(FALLBACK_NODE_VERSIONS)
        return versions
