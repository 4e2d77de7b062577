"""Pinata-backed content store.

Drafts are uploaded to Pinata's private IPFS network as JSON files; the owner
and lifecycle status live in the file's key-values, and every revision of a
draft shares one Pinata group.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from publish_stage.core.settings import Settings
from publish_stage.repositories.base import FilePage, StoredFile
from publish_stage.services.errors import NotFound, UpstreamFailure

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_BAD_REQUEST = 400


def _to_stored(item: Mapping[str, Any]) -> StoredFile:
    keyvalues = item.get("keyvalues") or {}
    return StoredFile(
        id=str(item["id"]),
        cid=str(item.get("cid") or ""),
        name=str(item.get("name") or ""),
        group_id=item.get("group_id"),
        keyvalues={str(key): str(value) for key, value in keyvalues.items()},
        created_at=item.get("created_at"),
    )


class PinataContentStore:
    """HTTP client wrapper around the Pinata v3 private files API."""

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        if not settings.pinata_jwt:
            raise ValueError("PINATA_JWT must be configured for the pinata content store")
        self._api_url = settings.pinata_api_url.rstrip("/")
        self._upload_url = settings.pinata_upload_url.rstrip("/")
        gateway = settings.pinata_gateway_url
        if gateway and "://" not in gateway:
            gateway = f"https://{gateway}"
        self._gateway_url = gateway.rstrip("/") if gateway else None
        self._link_ttl = settings.pinata_download_link_ttl_seconds
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(settings.content_store_timeout_seconds),
        )
        self._headers = {"Authorization": f"Bearer {settings.pinata_jwt}"}

    def close(self) -> None:
        self._client.close()

    def _send(
        self,
        method: str,
        url: str,
        *,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = self._headers if authenticated else None
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Pinata request %s %s failed: %s", method, url, exc, exc_info=True)
            raise UpstreamFailure("Content store request failed") from exc

        if response.status_code == HTTP_NOT_FOUND:
            raise NotFound("Content store resource not found")
        if response.status_code >= HTTP_BAD_REQUEST:
            logger.error(
                "Pinata request %s %s responded with %d", method, url, response.status_code
            )
            raise UpstreamFailure(f"Content store responded with {response.status_code}")
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure("Content store returned an invalid response") from exc

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        body = self._json(self._send(method, url, **kwargs))
        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}

    def create_group(self, name: str) -> str:
        data = self._request("POST", f"{self._api_url}/groups/private", json={"name": name})
        if "id" not in data:
            raise UpstreamFailure("Content store did not return a group id")
        return str(data["id"])

    def upload_json(
        self,
        payload: Mapping[str, Any],
        *,
        name: str,
        group_id: str,
        keyvalues: Mapping[str, str],
    ) -> StoredFile:
        body = json.dumps(dict(payload)).encode("utf-8")
        data = self._request(
            "POST",
            f"{self._upload_url}/files",
            files={"file": (f"{name}.json", body, "application/json")},
            data={
                "network": "private",
                "name": name,
                "group_id": group_id,
                "keyvalues": json.dumps(dict(keyvalues)),
            },
        )
        if "id" not in data:
            raise UpstreamFailure("Content store did not return a file id")
        return _to_stored(data)

    def find_by_cid(self, cid: str) -> list[StoredFile]:
        data = self._request("GET", f"{self._api_url}/files/private", params={"cid": cid})
        return [_to_stored(item) for item in data.get("files") or []]

    def fetch_json(self, cid: str) -> Any:
        """Download a private file through a short-lived signed gateway link."""
        if not self._gateway_url:
            raise UpstreamFailure("PINATA_GATEWAY_URL is not configured")
        body = self._json(
            self._send(
                "POST",
                f"{self._api_url}/files/private/download_link",
                json={
                    "url": f"{self._gateway_url}/files/{cid}",
                    "expires": self._link_ttl,
                    "date": int(time.time()),
                    "method": "GET",
                },
            )
        )
        link = body.get("data") if isinstance(body, dict) else None
        if not isinstance(link, str) or not link:
            raise UpstreamFailure("Content store did not return a download link")
        return self._json(self._send("GET", link, authenticated=False))

    def update_keyvalues(self, file_id: str, keyvalues: Mapping[str, str]) -> StoredFile:
        data = self._request(
            "PUT",
            f"{self._api_url}/files/private/{file_id}",
            json={"keyvalues": dict(keyvalues)},
        )
        if "id" not in data:
            raise UpstreamFailure("Content store did not return the updated file")
        return _to_stored(data)

    def delete(self, file_id: str) -> None:
        self._request("DELETE", f"{self._api_url}/files/private/{file_id}")

    def list_files(
        self,
        keyvalues: Mapping[str, str],
        *,
        limit: int,
        page_token: str | None = None,
    ) -> FilePage:
        params: dict[str, str | int] = {"limit": limit}
        for key, value in keyvalues.items():
            params[f"keyvalues[{key}]"] = value
        if page_token:
            params["pageToken"] = page_token
        data = self._request("GET", f"{self._api_url}/files/private", params=params)
        return FilePage(
            files=[_to_stored(item) for item in data.get("files") or []],
            next_page_token=data.get("next_page_token") or None,
        )
