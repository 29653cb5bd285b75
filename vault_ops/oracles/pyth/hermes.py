"""Pyth Hermes price update implementation."""

from __future__ import annotations

from typing import Any, Sequence

import requests

from ...contracts.oracle.interface import PriceUpdateSource
from ...core.errors import OracleUnavailable, VaultOpsError
from ...core.registry import register_price_source
from ...models.oracle import PriceUpdate
from ...models.shared import FeedType

BASE_URL = "https://hermes.pyth.network"
LATEST_UPDATES_ENDPOINT = "/v2/updates/price/latest"
TIMESTAMP_UPDATES_ENDPOINT = "/v2/updates/price/{publish_time}"
DEFAULT_TIMEOUT = 10.0
# Hermes answers 404 for unknown feeds and for publish times it has no update
# for, and 400 for malformed ids or timestamps in the future.
UNAVAILABLE_STATUS_CODES = {400, 404}


class HermesPriceSource(PriceUpdateSource):
    """Requests-backed implementation of :class:`PriceUpdateSource`."""

    feed_type = FeedType.PYTH

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def get_latest_price_updates(self, ids: Sequence[str]) -> PriceUpdate:
        payload = self._request(LATEST_UPDATES_ENDPOINT, self._params(ids))
        return self._parse_update(payload)

    def get_price_updates_at_timestamp(self, publish_time: int, ids: Sequence[str]) -> PriceUpdate:
        path = TIMESTAMP_UPDATES_ENDPOINT.format(publish_time=int(publish_time))
        payload = self._request(path, self._params(ids))
        return self._parse_update(payload)

    # ------------------------------------------------------------------
    # Internal helpers
    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _params(self, ids: Sequence[str]) -> list[tuple[str, Any]]:
        if not ids:
            raise ValueError("At least one price feed id is required")
        params: list[tuple[str, Any]] = [("ids[]", feed_id) for feed_id in ids]
        params.append(("encoding", "hex"))
        params.append(("parsed", "true"))
        return params

    def _request(self, path: str, params: list[tuple[str, Any]]) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise OracleUnavailable(f"Failed to call Hermes endpoint {path}: {exc}") from exc

        if response.status_code >= 400:
            self._raise_http_error(response)
        try:
            return response.json()
        except ValueError as exc:
            raise OracleUnavailable("Hermes returned a non-JSON payload") from exc

    def _raise_http_error(self, response: requests.Response) -> None:
        message = (getattr(response, "text", "") or "").strip() or f"HTTP {response.status_code}"
        if response.status_code in UNAVAILABLE_STATUS_CODES or response.status_code >= 500:
            raise OracleUnavailable(f"Hermes could not serve the price update: {message}")
        raise VaultOpsError(f"Unexpected Hermes response: {message}")

    def _parse_update(self, payload: Any) -> PriceUpdate:
        if not isinstance(payload, dict):
            raise OracleUnavailable("Unexpected Hermes payload structure")
        binary = payload.get("binary")
        if not isinstance(binary, dict) or not binary.get("data"):
            raise OracleUnavailable("Hermes returned an update without attestation data")
        parsed = payload.get("parsed") or []
        return {
            "binary": {"encoding": str(binary.get("encoding") or "hex"), "data": list(binary["data"])},
            "parsed": list(parsed),
        }


def register(*, replace: bool = False) -> None:
    """Register the Hermes source in the global registry."""

    register_price_source(FeedType.PYTH, HermesPriceSource, replace=replace)


register()
