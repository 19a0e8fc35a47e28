"""Browserbase REST API: create and release remote browser sessions."""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..constants import BROWSERBASE_API_URL, BROWSERBASE_HTTP_TIMEOUT_SECS
from ..errors import ProvisioningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowserbaseSessionInfo:
    session_id: str
    selenium_remote_url: str
    signing_key: str
    project_id: str


class BrowserbaseClient:
    """
    Thin wrapper over the two Browserbase calls this server needs.

    Blocking (requests); callers run it off the event loop.
    """

    def __init__(
        self,
        api_key: str,
        project_id: str,
        api_url: str = BROWSERBASE_API_URL,
        timeout: float = BROWSERBASE_HTTP_TIMEOUT_SECS,
        http: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.project_id = project_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._http = http or requests.Session()

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-BB-API-Key": self.api_key,
        }

    def create_session(self) -> BrowserbaseSessionInfo:
        """
        Raises:
            ProvisioningError: on transport failure, a non-2xx status, or a
                response without the fields needed to attach Selenium.
        """
        try:
            response = self._http.post(
                f"{self.api_url}/sessions",
                headers=self._headers(),
                json={"projectId": self.project_id},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProvisioningError(f"Failed to reach Browserbase: {e}") from e

        if not response.ok:
            raise ProvisioningError(
                f"Failed to create Browserbase session: {response.status_code} {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProvisioningError(f"Browserbase returned a non-JSON response: {e}") from e
        try:
            info = BrowserbaseSessionInfo(
                session_id=data["id"],
                selenium_remote_url=data["seleniumRemoteUrl"],
                signing_key=data["signingKey"],
                project_id=self.project_id,
            )
        except (KeyError, TypeError) as e:
            raise ProvisioningError(f"Unexpected Browserbase session response (missing {e})") from e

        logger.info(f"Created Browserbase session {info.session_id}")
        return info

    def release_session(self, session_id: str) -> bool:
        """
        Ask Browserbase to end the session now instead of at its timeout.

        Returns True on success. Never raises; release is best-effort.
        """
        try:
            response = self._http.post(
                f"{self.api_url}/sessions/{session_id}",
                headers=self._headers(),
                json={"projectId": self.project_id, "status": "REQUEST_RELEASE"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Exception releasing Browserbase session {session_id}: {e}")
            return False

        if response.status_code in (200, 201, 204):
            logger.debug(f"Released Browserbase session {session_id}")
            return True
        logger.warning(
            f"Failed to release Browserbase session {session_id}: HTTP {response.status_code} - {response.text[:200]}"
        )
        return False


__all__ = ["BrowserbaseClient", "BrowserbaseSessionInfo"]
