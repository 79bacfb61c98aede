"""
HTTP client for the reading-club backend.

The backend exposes one function per entity (club, member, session, server,
book) under a common base URL; the HTTP method selects the action. A second
client pointed at the storage base URL serves member avatars.
"""
import asyncio
import logging
import os
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from config.settings import settings
from bookclub.errors import RemoteFailure

load_dotenv()

logger = logging.getLogger("remote.client")


class BackendClient:
    """
    Thin JSON client over a shared requests.Session.

    Every failure mode (transport error, non-2xx status, undecodable body) is
    raised as RemoteFailure so sources only ever deal with one error type.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.backend_base_url).rstrip("/")
        self.api_key = api_key or settings.backend_api_key or os.getenv("BOOKCLUB_API_KEY")
        self.timeout = timeout or settings.request_timeout_seconds
        self._session = session or requests.Session()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def _send(
        self,
        method: str,
        function: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}/{function}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            response = self._session.request(
                method,
                url,
                headers={**self._get_headers(), **(headers or {})},
                params=params,
                json=payload,
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {function} failed: {e}")
            raise RemoteFailure(f"Request to {function} failed: {e}") from e

        if not response.ok:
            detail = _error_detail(response)
            logger.error(f"{method} {function} returned {response.status_code}: {detail}")
            raise RemoteFailure(detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {function} returned a non-JSON body")
            raise RemoteFailure(f"Invalid response from {function}", status_code=response.status_code) from e

    async def request(
        self,
        method: str,
        function: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send one request off the event loop.

        payload is sent as JSON; data is sent as a raw body (e.g. an image
        upload) with headers overriding the defaults.
        """
        logger.debug(f"{method} {function} params={params}")
        return await asyncio.to_thread(self._send, method, function, params, payload, data, headers)

    def close(self) -> None:
        self._session.close()


def _error_detail(response: requests.Response) -> str:
    """Pull the backend's error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "Unknown error"
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or str(body)
    return str(body)
