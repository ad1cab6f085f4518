from __future__ import annotations

import logging
import os
from typing import Any, Dict

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.sportmonks.com/v3/football"

# Everything the settlement algorithms read from a fixture.
FIXTURE_INCLUDES = "participants;scores;events;statistics;lineups.details;state;odds"


class SportMonksClient:
    def __init__(self, base_url: str | None = None, api_token: str | None = None, timeout: int = 15) -> None:
        self.base_url = (base_url or os.getenv("SPORTMONKS_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.api_token = api_token or os.getenv("SPORTMONKS_API_TOKEN")
        if not self.api_token:
            raise ValueError("Missing API token. Set SPORTMONKS_API_TOKEN or pass api_token explicitly.")
        self.timeout = timeout

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        response = requests.get(
            url,
            params={**params, "api_token": self.api_token},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or "data" not in payload:
            raise ValueError(f"Unexpected API response shape from {url}")
        return payload

    # ── fixture snapshot ─────────────────────────────────────────────────────

    def get_fixture_snapshot(self, fixture_id: int | str) -> Dict[str, Any]:
        """Fixture with every include the settlement engine reads."""
        logger.debug("Fetching fixture %s", fixture_id)
        payload = self._get(f"fixtures/{fixture_id}", {"include": FIXTURE_INCLUDES})
        data = payload.get("data")
        if not isinstance(data, dict) or not data:
            raise ValueError(f"Fixture not found for id={fixture_id}")
        return data

    def get_fixture_snapshots(self, fixture_ids: list[int | str]) -> Dict[str, Dict[str, Any]]:
        return {str(fid): self.get_fixture_snapshot(fid) for fid in fixture_ids}
