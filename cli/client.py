from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/ingest", json=payload).json()

    def get_latest(self, device_id: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/latest", params=self._params(device_id=device_id)).json()

    def get_history(
        self, limit: Optional[int] = None, device_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = self._params(limit=limit, device_id=device_id)
        return self._request("GET", "/history", params=params).json()

    def get_alerts(
        self, limit: Optional[int] = None, device_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = self._params(limit=limit, device_id=device_id)
        return self._request("GET", "/alerts", params=params).json()

    def export_csv(self, limit: Optional[int] = None, device_id: Optional[str] = None) -> str:
        params = self._params(limit=limit, device_id=device_id)
        return self._request("GET", "/export.csv", params=params).text

    @staticmethod
    def _params(**values: Any) -> Dict[str, Any]:
        return {key: value for key, value in values.items() if value is not None}

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
