import threading
import time
from typing import Any, Dict, Optional

import requests

from core.config import Settings
from core.exceptions import BackendUnavailable
from core.logging_config import get_logger

logger = get_logger(__name__)

# Refresh the access token this many seconds before commercetools expires it
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class CommerceToolsError(Exception):
    """A 4xx answer from the commercetools API"""

    def __init__(self, status_code: int, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(f"commercetools responded with {status_code}")

    @property
    def error_codes(self):
        return [error.get("code") for error in self.payload.get("errors", [])]


class CommerceToolsClient:
    """Minimal JSON client for the commercetools HTTP API.

    Authenticates with the OAuth2 client-credentials grant and caches the
    bearer token until shortly before it expires. Network failures, 5xx
    answers and rejected credentials surface as BackendUnavailable; other
    4xx answers raise CommerceToolsError for the caller to interpret. No
    call is retried.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.project_key = settings.CTP_PROJECT_KEY
        self.client_id = settings.CTP_CLIENT_ID
        self.client_secret = settings.CTP_CLIENT_SECRET
        self.api_url = settings.CTP_API_URL.rstrip("/")
        self.auth_url = settings.CTP_AUTH_URL.rstrip("/")
        self.scopes = [
            scope if ":" in scope else f"{scope}:{self.project_key}"
            for scope in settings.ctp_scopes
        ]
        self.timeout = settings.CTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    # ---------------- AUTH ---------------- #

    def _fetch_token(self) -> None:
        try:
            response = self.session.post(
                f"{self.auth_url}/oauth/token",
                data={"grant_type": "client_credentials", "scope": " ".join(self.scopes)},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"commercetools token request failed: {str(e)}")
            raise BackendUnavailable("Review backend authentication failed") from e

        self._token = data["access_token"]
        self._token_expires_at = time.monotonic() + int(data.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN_SECONDS
        logger.info("commercetools access token obtained", extra={"project_key": self.project_key})

    def access_token(self) -> str:
        with self._token_lock:
            if self._token is None or time.monotonic() >= self._token_expires_at:
                self._fetch_token()
            return self._token

    def invalidate_token(self) -> None:
        with self._token_lock:
            self._token = None
            self._token_expires_at = 0.0

    # ---------------- REQUESTS ---------------- #

    def request(self, method: str, path: str, params=None, json=None) -> Dict[str, Any]:
        url = f"{self.api_url}{path}"
        headers = {"Authorization": f"Bearer {self.access_token()}"}

        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"commercetools {method} {path} failed: {str(e)}")
            raise BackendUnavailable() from e

        if response.status_code == 401:
            self.invalidate_token()
            logger.warning(f"commercetools rejected access token for {method} {path}")
            raise BackendUnavailable()

        if response.status_code >= 500:
            logger.error(f"commercetools {method} {path} returned {response.status_code}")
            raise BackendUnavailable()

        try:
            payload = response.json() if response.content else {}
        except ValueError as e:
            logger.error(f"commercetools {method} {path} returned invalid JSON")
            raise BackendUnavailable() from e

        if response.status_code >= 400:
            raise CommerceToolsError(response.status_code, payload)

        return payload

    def get(self, path: str, params=None) -> Dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, json=None) -> Dict[str, Any]:
        return self.request("POST", path, json=json)

    def delete(self, path: str, params=None) -> Dict[str, Any]:
        return self.request("DELETE", path, params=params)
