from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the relay service."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def send_reading(
        self,
        ppm: str,
        sensor_id: Optional[str] = None,
        raw: Optional[str] = None,
        rs: Optional[str] = None,
        level: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            key: value
            for key, value in (
                ("sensorId", sensor_id),
                ("ppm", ppm),
                ("raw", raw),
                ("rs", rs),
                ("level", level),
            )
            if value is not None
        }
        try:
            response = self._client.get("/api/readings", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        data = payload.get("data")
        if not isinstance(data, dict):
            raise typer.BadParameter("Unexpected response payload when sending reading.")
        return data

    def get_history(self) -> Dict[str, List[Dict[str, Any]]]:
        try:
            response = self._client.get("/api/readings/history")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
