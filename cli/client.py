from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the alarm monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def run_check(self) -> Dict[str, Any]:
        return self._request("POST", "/alarms/check")

    def list_alarms(self, resolved: Optional[bool] = None) -> List[Dict[str, Any]]:
        params = {} if resolved is None else {"resolved": str(resolved).lower()}
        return self._request("GET", "/alarms", params=params)

    def acknowledge(self, alarm_id: str, actor: str) -> Dict[str, Any]:
        return self._request("POST", f"/alarms/{alarm_id}/acknowledge", json={"actor": actor})

    def resolve(self, alarm_id: str, actor: str) -> Dict[str, Any]:
        return self._request("POST", f"/alarms/{alarm_id}/resolve", json={"actor": actor})

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            if response.status_code == 404:
                raise typer.BadParameter(f"{path} was not found.")
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
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
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
