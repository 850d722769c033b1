"""
HTTP transport for explorer and relay providers
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Optional

import requests

from ..errors import ProviderError, RequestCancelled, RequestTimeout
from .config import DEFAULT_TIMEOUT_SECONDS

MAX_ERROR_BODY_CHARS = 300
CANCEL_POLL_SECONDS = 0.05


def extract_error_message(response) -> str:
    """Provider error body if it sent one, else the status line"""
    body = (response.text or "").strip()
    if body:
        return body[:MAX_ERROR_BODY_CHARS]
    return f"{response.status_code} {response.reason or ''}".strip()


class ExplorerHttp:
    """
    Timeout-bounded, cancellable requests against one provider.

    ``cancel_event`` is checked before every request and watched while it is in
    flight: with an event supplied, the blocking call runs on a worker thread
    and the caller stops waiting the moment the event is set. The call then
    raises ``RequestCancelled`` and nothing from it is returned; the abandoned
    worker finishes on its own within the request timeout.

    Example:
        >>> with ExplorerHttp(timeout=5) as http:
        ...     height = http.get_text("https://mempool.space/api/blocks/tip/height")
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        cancel_event: Optional[threading.Event] = None,
    ):
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.cancel_event = cancel_event
        self._executor = None

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RequestCancelled("Request was cancelled.")

    def _request(self, method: str, url: str, **kwargs):
        self._check_cancelled()
        try:
            response = self._send(method, url, **kwargs)
        except requests.Timeout as e:
            raise RequestTimeout(f"Request to {url} timed out after {self.timeout:g}s.") from e
        except requests.RequestException as e:
            raise ProviderError(f"Request to {url} failed: {e}") from e
        self._check_cancelled()

        if not response.ok:
            raise ProviderError(extract_error_message(response))
        return response

    def _send(self, method: str, url: str, **kwargs):
        if self.cancel_event is None:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="explorer-http")
        future = self._executor.submit(self.session.request, method, url, timeout=self.timeout, **kwargs)
        while True:
            done, _ = wait([future], timeout=CANCEL_POLL_SECONDS)
            if done:
                return future.result()
            if self.cancel_event.is_set():
                future.cancel()
                raise RequestCancelled("Request was cancelled.")

    def get_json(self, url: str) -> Any:
        response = self._request("GET", url)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Provider returned invalid JSON from {url}.") from e

    def get_text(self, url: str) -> str:
        return self._request("GET", url).text

    def post_text(self, url: str, body: str) -> str:
        response = self._request(
            "POST",
            url,
            data=body.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        return response.text

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
