from __future__ import annotations

# `json.dumps` is used only for safe, truncated debug output in log lines.
import json
# `logging` reports failed calls without leaking API keys from the query string.
import logging
# Typing helpers keep our interfaces explicit while we still operate on JSON dicts.
from typing import Any, Mapping, MutableMapping, Optional
# `urlsplit` reduces a request URL to the host name shown to chat users.
from urllib.parse import urlsplit

# `requests` performs HTTP calls; we wrap it to centralize retries, timeouts, and error handling.
import requests
# `HTTPAdapter` lets us mount a retry policy onto a `requests.Session`.
from requests.adapters import HTTPAdapter
# `Retry` implements backoff for transient failures (rate limits, 5xx), without manual sleep loops.
from urllib3.util.retry import Retry

from citybikebot.config.models import HttpSettings
from citybikebot.errors import ExternalServiceFailure


logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    # Google Maps puts the API key in the query string; keep it out of logs and user-facing errors.
    head, sep, _ = url.partition("key=")
    return f"{head}{sep}***" if sep else url


def _service_name(url: str) -> str:
    # Host only: short enough for a chat reply and never carries query-string secrets.
    return urlsplit(url).netloc or "remote service"


# `HttpJsonClient` is the shared transport for every external collaborator (GBFS, Google Maps, Imgur, Slack).
class HttpJsonClient:
    """
    Small JSON-over-HTTP client.

    - One `requests.Session` per client (connection reuse).
    - Transient failures (429/5xx, connect/read errors) are retried by the mounted adapter.
    - Every call has a bounded timeout; any failure surfaces as `ExternalServiceFailure`.
    """

    def __init__(
        self,
        settings: HttpSettings,
        *,
        headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        # A single timeout value keeps behavior predictable and avoids hanging a chat request forever.
        self._timeout_s = settings.timeout_s
        # Sessions can be injected so tests never touch the network.
        self._session = session or requests.Session()
        # A stable User-Agent helps API operators identify our traffic.
        self._session.headers.update({"User-Agent": settings.user_agent, "Accept": "application/json"})
        if headers:
            self._session.headers.update(dict(headers))

        retry = Retry(
            total=settings.max_retries,
            connect=settings.max_retries,
            read=settings.max_retries,
            status=settings.max_retries,
            backoff_factor=settings.backoff_factor,
            # Retry only on status codes that are likely transient or rate-limit related.
            status_forcelist=(429, 500, 502, 503, 504),
            # POST is included because both Imgur uploads and Slack posts are safe to repeat on 5xx.
            allowed_methods=("GET", "POST"),
            respect_retry_after_header=True,
            # Do not raise inside urllib3; we want to surface a single `ExternalServiceFailure` with context.
            raise_on_status=False,
        )
        self._session.mount("https://", HTTPAdapter(max_retries=retry))
        self._session.mount("http://", HTTPAdapter(max_retries=retry))

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        service = _service_name(url)
        try:
            resp = self._session.request(method, url, timeout=self._timeout_s, **kwargs)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, _redact(url), self._timeout_s)
            raise ExternalServiceFailure(f"{service} timed out") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, _redact(url), exc)
            raise ExternalServiceFailure(f"{service} could not be reached") from exc

        # Treat any 4xx/5xx as an error; the adapter already retried the transient ones.
        # The body goes to the log only; the exception text ends up in chat.
        if resp.status_code >= 400:
            logger.warning("%s %s returned %s: %s", method, _redact(url), resp.status_code, resp.text[:300])
            raise ExternalServiceFailure(
                f"{service} answered with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body: %s", method, _redact(url), resp.text[:200])
            raise ExternalServiceFailure(f"{service} sent an unreadable response") from exc

    def get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return self._request("GET", url, params=params, headers=headers)

    def post_json(
        self,
        url: str,
        *,
        data: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        req_headers: MutableMapping[str, str] = dict(headers or {})
        return self._request("POST", url, data=data, json=json_body, headers=req_headers)

    @staticmethod
    def require_mapping(payload: Any, *, what: str) -> Mapping[str, Any]:
        # Every collaborator we call returns a JSON object at the top level.
        if not isinstance(payload, Mapping):
            logger.warning("Unexpected %s response: %s", what, json.dumps(payload)[:200])
            raise ExternalServiceFailure(f"Unexpected {what} response")
        return payload

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpJsonClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
