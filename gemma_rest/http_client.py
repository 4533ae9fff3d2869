"""HTTP layer for the Gemma REST API."""

from __future__ import annotations

import logging
from typing import Any, Iterable
from urllib.parse import quote

import requests

from gemma_rest.config import GemmaConfig
from gemma_rest.exceptions import (
    GemmaTimeoutError,
    HttpError,
    NetworkError,
    SchemaMismatch,
)

logger = logging.getLogger(__name__)

ACCEPT_HEADERS = {
    "json": "application/json",
    "tsv": "text/tab-separated-values",
}


def encode_ids(ids: str | int | Iterable[str | int]) -> str:
    """Join one or more identifiers into a URL path segment."""
    if isinstance(ids, (str, int)):
        ids = [ids]
    # ids go straight into the path, so quote everything except the separator
    return ",".join(quote(str(i), safe="") for i in ids)


def clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop unset params and flatten list values into comma-separated strings."""
    cleaned: dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        elif isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class GemmaHttpClient:
    """Thin wrapper over a `requests.Session` that maps failures to package errors.

    One attempt per call; retrying is left to the caller.
    """

    def __init__(
        self,
        config: GemmaConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or GemmaConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def build_url(self, path: str) -> str:
        """Absolute URL of an endpoint path under the configured base URL."""
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        accept: str = "json",
    ) -> dict | list | str:
        """GET one resource and return the parsed JSON document (or text for TSV)."""
        url = self.build_url(path)
        query = clean_params(params)
        logger.debug("GET %s params=%s", url, query)

        try:
            response = self.session.get(
                url,
                params=query,
                headers={"Accept": ACCEPT_HEADERS[accept]},
                timeout=self.config.timeout,
                verify=self.config.ssl_verify,
                auth=self.config.auth,
            )
        # Timeout must be caught before the generic RequestException
        except requests.Timeout as exc:
            raise GemmaTimeoutError(
                f"Request to {url} exceeded {self.config.timeout}s"
            ) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.warning("Received HTTP %s for %s", response.status_code, url)
            raise HttpError(response.status_code, response.text, url=url)

        if accept == "tsv":
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            raise SchemaMismatch(f"Non-JSON response received from {url}") from exc
