"""
HTTP calls to experiment servers and beacons.

    HEAD   <url>                   liveness check
    GET    <url>/setredirect/<n>   switch the served condition to n
    DELETE <url>/setredirect       stop redirecting

Response text is returned verbatim for display. Every request has a bounded
timeout; failures raise TransientIOError and are not retried.
"""

import logging
from typing import Optional

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .errors import TransientIOError

logger = logging.getLogger(__name__)

REDIRECT_PATH = "/setredirect"


def redirect_endpoint(url: str, slot: Optional[int] = None) -> str:
    base = url.rstrip("/") + REDIRECT_PATH
    return base if slot is None else f"{base}/{slot}"


class RedirectClient:
    """Thin requests wrapper used by the shell and the experiment runner."""

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, url: str) -> requests.Response:
        logger.info(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransientIOError(f"{method} {url} failed: {e}") from e
        logger.info(f"{method} {url} -> {response.status_code}")
        return response

    def check(self, url: str) -> str:
        """HEAD the endpoint and return '<status> <reason>'."""
        response = self._request("HEAD", url)
        return f"{response.status_code} {response.reason}"

    def set_redirect(self, url: str, slot: int) -> str:
        return self._request("GET", redirect_endpoint(url, slot)).text

    def clear_redirect(self, url: str) -> str:
        return self._request("DELETE", redirect_endpoint(url)).text

    def apply(self, url: str, slot: Optional[int]) -> str:
        """Set slot, or clear the redirect when slot is None."""
        return self.clear_redirect(url) if slot is None else self.set_redirect(url, slot)

    def close(self) -> None:
        self.session.close()
