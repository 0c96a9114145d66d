"""
PostgREST-compatible record store (Supabase and friends).

Rows are addressed as ``{base_url}/{table}``; lookups use PostgREST filter
syntax (``?id=eq.<id>``) and inserts ask for the stored row back with
``Prefer: return=representation``.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ris_ingest.errors import StoreError
from ris_ingest.store.base import InsertResult, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
DEFAULT_RETRY_COUNT = 3
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_MAX_CONNECTIONS = 10


class RestStore(RecordStore):
    """Talks to the store over HTTP with a shared, thread-safe session.

    Only lookups are retried. Inserts are sent once: a retried POST whose
    first attempt did land would come back as a spurious duplicate.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: int = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
    ) -> None:
        if timeout < 1:
            raise ValueError(f"timeout must be >= 1, got {timeout}")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._retry_count = retry_count
        self._session: requests.Session | None = None
        self._lock = Lock()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def get_session(self) -> requests.Session:
        with self._lock:
            if self._session is None:
                retry_strategy = Retry(
                    total=self._retry_count,
                    backoff_factor=DEFAULT_BACKOFF_FACTOR,
                    status_forcelist=[429, 500, 502, 503, 504],
                    allowed_methods=["GET", "HEAD"],
                )
                adapter = HTTPAdapter(
                    pool_connections=DEFAULT_MAX_CONNECTIONS,
                    pool_maxsize=DEFAULT_MAX_CONNECTIONS,
                    max_retries=retry_strategy,
                )
                session = requests.Session()
                session.mount("http://", adapter)
                session.mount("https://", adapter)
                self._session = session
                logger.info("Created HTTP session for %s", self.base_url)
            return self._session

    def close(self) -> None:
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def find_patient_by_id(self, patient_id: str, table: str) -> bool:
        url = f"{self.base_url}/{table}"
        try:
            response = self.get_session().get(
                url,
                params={"id": f"eq.{patient_id}", "select": "id"},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"Patient lookup failed: {exc}") from exc

        if not response.ok:
            raise StoreError(
                f"Patient lookup returned HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            rows = response.json()
        except ValueError as exc:
            raise StoreError(f"Patient lookup returned invalid JSON: {exc}") from exc
        return bool(rows)

    def insert(self, table: str, record: dict[str, Any]) -> InsertResult:
        url = f"{self.base_url}/{table}"
        headers = self._headers()
        headers["Prefer"] = "return=representation"
        try:
            response = self.get_session().post(
                url, json=record, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise StoreError(f"Insert into {table} failed: {exc}") from exc

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                data: Any = response.json()
            except ValueError:
                data = response.text
        else:
            data = response.text

        if not response.ok:
            logger.warning("Insert into %s rejected: HTTP %d %s", table, response.status_code, data)
        return InsertResult(
            success=response.ok,
            status_code=response.status_code,
            data=data,
            duplicate=response.status_code == 409,
        )
