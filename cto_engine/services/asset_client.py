from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from ..config import get_settings
from ..errors import AssetServiceError

logger = logging.getLogger(__name__)

SELLABLE_STATUS = "SELLABLE"


class AssetServiceClient(Protocol):
    def get_asset(self, asset_id: str) -> dict[str, Any]:
        ...


class HttpAssetServiceClient:
    def __init__(self, base_url: str | None = None) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.ASSET_SERVICE_URL).rstrip("/")
        self.timeout = settings.ASSET_SERVICE_TIMEOUT_SECONDS
        self.headers: dict[str, str] = {"Accept": "application/json"}
        if settings.ASSET_SERVICE_API_KEY:
            if settings.ASSET_SERVICE_API_KEY.startswith("Bearer "):
                self.headers["Authorization"] = settings.ASSET_SERVICE_API_KEY
            else:
                self.headers["X-API-Key"] = settings.ASSET_SERVICE_API_KEY

    def get_asset(self, asset_id: str) -> dict[str, Any]:
        try:
            response = requests.get(
                f"{self.base_url}/assets/{asset_id}",
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Asset service unreachable for asset %s: %s", asset_id, exc)
            raise AssetServiceError(None, str(exc)) from exc

        if not response.ok:
            raise AssetServiceError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise AssetServiceError(response.status_code, "invalid JSON body") from exc
        if not isinstance(data, dict) or "status" not in data:
            raise AssetServiceError(response.status_code, "asset payload has no status")
        return data
