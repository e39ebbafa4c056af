"""Solr HTTP backend."""

import logging
from collections.abc import Iterable
from typing import Any

import requests

from .base import BackendRequestError, SearchBackend

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
# Above this many encoded characters the params go into a form body
MAX_GET_LENGTH = 4000

HEADERS = {
    "User-Agent": "discovery/0.1",
    "Accept": "application/json",
}


class SolrBackend(SearchBackend):
    """Talks to the ``select`` handler of one Solr core.

    Requests are not retried; any failure surfaces as
    :class:`BackendRequestError`.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize backend.

        Args:
            url: Base URL of the core, e.g. ``http://localhost:8983/solr/hsp``
            timeout: Request timeout in seconds
            session: HTTP session to reuse (default: a new one)
        """
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def select_url(self) -> str:
        return f"{self.url}/select"

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def search(self, params: Iterable[tuple[str, str]]) -> dict[str, Any]:
        pairs = [(name, str(value)) for name, value in params]
        pairs.append(("wt", "json"))
        logger.debug("Solr request to %s: %s", self.select_url, pairs)

        try:
            if sum(len(n) + len(v) + 2 for n, v in pairs) > MAX_GET_LENGTH:
                response = self._session.post(
                    self.select_url, data=pairs, headers=HEADERS, timeout=self.timeout
                )
            else:
                response = self._session.get(
                    self.select_url, params=pairs, headers=HEADERS, timeout=self.timeout
                )
        except requests.Timeout as e:
            raise BackendRequestError(f"Solr request timed out: {e}") from e
        except requests.ConnectionError as e:
            raise BackendRequestError(f"Could not connect to Solr: {e}") from e
        except requests.RequestException as e:
            raise BackendRequestError(f"Solr request failed: {e}") from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise BackendRequestError(
                f"Solr returned HTTP {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            ) from e

        try:
            reply = response.json()
        except ValueError as e:
            raise BackendRequestError(
                "Solr reply is not valid JSON", status_code=response.status_code
            ) from e

        if not isinstance(reply, dict):
            raise BackendRequestError(
                "Solr reply is not a JSON object", status_code=response.status_code
            )
        return reply


def _error_message(response: requests.Response) -> str:
    """Get the error message Solr puts into failed replies."""
    try:
        error = response.json().get("error", {})
    except (ValueError, AttributeError):
        return response.reason or ""
    if isinstance(error, dict) and error.get("msg"):
        return str(error["msg"])
    return response.reason or ""
