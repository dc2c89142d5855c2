"""HTTP client for fetching the payroll configuration document."""
from __future__ import annotations

import logging
from typing import Any

import httpx
import yaml

from payroll_engine.core.errors import ConfigurationFetchError

logger = logging.getLogger(__name__)


class RemoteConfigClient:
    """Fetches a YAML or JSON configuration document from a URL."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not url.startswith(("http://", "https://")):
            raise ValueError("configuration url must include an http(s) scheme")
        self._url = url
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RemoteConfigClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def fetch(self) -> dict[str, Any]:
        """Return the parsed configuration mapping."""

        try:
            response = self._client.get(self._url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ConfigurationFetchError(f"failed to fetch configuration from {self._url}: {exc}") from exc

        # YAML is a superset of JSON, so one parser covers both document types.
        try:
            document = yaml.safe_load(response.text) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationFetchError(f"configuration at {self._url} is not valid YAML/JSON") from exc

        if not isinstance(document, dict):
            raise ConfigurationFetchError(f"configuration at {self._url} must be a mapping")
        logger.info("loaded payroll configuration from %s", self._url)
        return document
