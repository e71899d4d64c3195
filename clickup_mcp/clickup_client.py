from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .errors import ClickUpAPIError, ValidationError

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class ClickUpClient:
    """
    Thin async wrapper around the ClickUp REST API.

    One instance is created per process in `main.py` and handed to the tool
    modules and the hierarchy cache. Paths are relative to the API version
    root, e.g. `/task/{task_id}` for v2 or `/workspaces/{team_id}/docs` for v3.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.clickup_api_base_url,
            headers={"Authorization": settings.clickup_api_key},
            timeout=settings.request_timeout,
            transport=transport,
        )

    @property
    def team_id(self) -> str:
        return self._settings.clickup_team_id

    async def request(
        self,
        method: str,
        path: str,
        *,
        version: str = "v2",
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (`{}` when empty).
        """
        response = await self._send(
            method, path, version=version, params=params, json=json, files=files, headers=headers
        )
        return _decode_body(response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def call_api(
        self,
        method: Optional[str],
        path: Optional[str],
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Execute a raw request against any v2 endpoint.

        Used by the generic passthrough tool for endpoints without a dedicated
        tool (dashboards, goals, custom fields, ...).
        """
        normalized_method = (method or "").upper()
        if not normalized_method:
            raise ValidationError("HTTP method is required")
        if normalized_method not in SUPPORTED_METHODS:
            raise ValidationError(
                f"Unsupported HTTP method: {method}. Use GET, POST, PUT, PATCH, or DELETE."
            )
        if not path or not isinstance(path, str):
            raise ValidationError("API path is required")
        if path.lower().startswith(("http://", "https://")):
            raise ValidationError(
                "Provide ClickUp API paths relative to the API root (e.g., /team/{teamId}/goal)"
            )

        normalized_path = path if path.startswith("/") else f"/{path}"
        response = await self._send(
            normalized_method,
            normalized_path,
            params=query,
            json=body,
            headers=headers,
        )
        return {
            "status": response.status_code,
            "path": normalized_path,
            "method": normalized_method,
            "headers": dict(response.headers),
            "data": _decode_body(response),
        }

    async def download(self, url: str) -> bytes:
        """Fetch a remote file (used for attachments given by URL)."""
        try:
            async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ClickUpAPIError(f"Could not download {url}: {e}") from e
        if response.is_error:
            raise ClickUpAPIError(f"Could not download {url}: HTTP {response.status_code}")
        return response.content

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        version: str = "v2",
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"/{version}{path}"
        logger.debug(f"ClickUp request: {method} {url}")

        try:
            response = await self._http.request(
                method,
                url,
                params=_clean_params(params),
                json=json,
                files=files,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise ClickUpAPIError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            message, err_code = _parse_error(response)
            logger.debug(f"ClickUp error response: {response.status_code} {message}")
            raise ClickUpAPIError(message, status_code=response.status_code, err_code=err_code)
        return response


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def _parse_error(response: httpx.Response) -> tuple[str, Optional[str]]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if isinstance(payload, dict):
        message = payload.get("err") or payload.get("error") or payload.get("message")
        return str(message or response.reason_phrase), payload.get("ECODE")
    return response.reason_phrase, None
