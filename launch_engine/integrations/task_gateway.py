"""
External task tracker gateway.

Surfacing promotes checklist items into tasks held by an external task
service. All outbound calls to that service go through a TaskCreator; direct
`requests` calls in services or blueprints are FORBIDDEN.

    TaskCreator         abstract seam used by the surfacer and state machine
    TaskServiceGateway  HTTP implementation (bearer token, retry + backoff, timeout)
    NullTaskCreator     used when TASK_SERVICE_URL is unset; refuses every call

Every failure reaching a caller is a TaskCreationError, so services never need
to know about HTTP.

Testability: pass a mock `session` to TaskServiceGateway() in tests instead of
letting it create a real requests.Session internally, and set `backoff=(0, 0)`
to skip the sleeps between retries.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Any

import requests

from launch_engine.core.exceptions import TaskCreationError

logger = logging.getLogger(__name__)

# ── Retry constants ────────────────────────────────────────────────────────
_RETRY_MAX = 2
_RETRY_BACKOFF_SECONDS = (1, 4)    # sleep[0] after 1st fail, sleep[1] after 2nd

_DEFAULT_TIMEOUT = 10


class GatewayResult:
    """Structured return value from TaskServiceGateway requests.

    Attributes:
        ok:           True if the call succeeded (HTTP 2xx + no exception).
        status_code:  HTTP status code (None if network-level failure).
        data:         Parsed JSON response body, else None.
        error:        Human-readable error message or None.
        duration_ms:  Round-trip latency of the last attempt in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def __repr__(self):
        return f"<GatewayResult ok={self.ok} status={self.status_code}>"


class TaskCreator(abc.ABC):
    """Creates and closes tasks in an external tracker."""

    @abc.abstractmethod
    def create_task(
        self,
        title: str,
        priority: int,
        notes: str | None = None,
        project: str | None = None,
    ) -> str:
        """Create a task and return its external id.

        Raises:
            TaskCreationError: the tracker rejected or never answered the call.
        """

    @abc.abstractmethod
    def mark_done(self, task_id: str) -> None:
        """Mark an external task done.

        Raises:
            TaskCreationError: the tracker rejected or never answered the call.
        """


class NullTaskCreator(TaskCreator):
    """Placeholder used when no task service is configured."""

    def create_task(self, title, priority, notes=None, project=None):
        raise TaskCreationError("No task service configured (TASK_SERVICE_URL is empty)")

    def mark_done(self, task_id):
        raise TaskCreationError("No task service configured (TASK_SERVICE_URL is empty)")


class TaskServiceGateway(TaskCreator):
    """REST client for the external task service.

    Endpoints:
        POST  {base_url}/tasks          → {"id": "..."}
        PATCH {base_url}/tasks/<id>     {"status": "done"}

    5xx responses and network errors are retried up to _RETRY_MAX
    times; 4xx responses fail immediately.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        backoff: tuple[int, ...] = _RETRY_BACKOFF_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.backoff = backoff
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, *, json_body: dict | None = None) -> GatewayResult:
        """Execute a request with retries. Never raises; callers check ``.ok``."""
        url = f"{self.base_url}{path}"
        last_error = "Unknown error"
        last_status: int | None = None
        duration_ms = 0

        for attempt in range(_RETRY_MAX + 1):
            try:
                kwargs: dict[str, Any] = {"headers": self._headers(), "timeout": self.timeout}
                if json_body is not None:
                    kwargs["json"] = json_body
                t0 = time.perf_counter()
                resp = self.session.request(method, url, **kwargs)
                duration_ms = int((time.perf_counter() - t0) * 1000)
                last_status = resp.status_code

                if resp.ok:
                    try:
                        data = resp.json() if resp.content else {}
                    except ValueError:
                        data = {}
                    return GatewayResult(True, resp.status_code, data, None, duration_ms)

                last_error = f"HTTP {resp.status_code}: {resp.text[:500]}"
                logger.warning(
                    "Task service request failed attempt=%d/%d status=%d %s %s",
                    attempt + 1, _RETRY_MAX + 1, resp.status_code, method, url,
                )
                if resp.status_code < 500:
                    break

            except requests.Timeout:
                duration_ms = int(self.timeout * 1000)
                last_error = f"Request timed out after {self.timeout}s"
                logger.warning(
                    "Task service request timed out attempt=%d/%d %s %s",
                    attempt + 1, _RETRY_MAX + 1, method, url,
                )

            except requests.RequestException as exc:
                last_error = str(exc)[:500]
                logger.warning(
                    "Task service network error attempt=%d/%d %s %s error=%s",
                    attempt + 1, _RETRY_MAX + 1, method, url, last_error,
                )

            if attempt < _RETRY_MAX:
                time.sleep(self.backoff[min(attempt, len(self.backoff) - 1)])

        return GatewayResult(False, last_status, None, last_error, duration_ms)

    # ── TaskCreator ──────────────────────────────────────────────────────────

    def create_task(self, title, priority, notes=None, project=None):
        payload = {"title": title, "priority": priority}
        if notes:
            payload["notes"] = notes
        if project:
            payload["project"] = project

        result = self.request("POST", "/tasks", json_body=payload)
        if not result.ok:
            raise TaskCreationError(result.error)
        task_id = (result.data or {}).get("id") if isinstance(result.data, dict) else None
        if not task_id:
            raise TaskCreationError("Task service response missing id")
        logger.info("External task created id=%s priority=%s", task_id, priority)
        return str(task_id)

    def mark_done(self, task_id):
        result = self.request("PATCH", f"/tasks/{task_id}", json_body={"status": "done"})
        if not result.ok:
            raise TaskCreationError(result.error)
        logger.info("External task marked done id=%s", task_id)
