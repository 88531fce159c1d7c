"""
Request and Response Models

Plain data carriers passed between the search operations, the request
executor and the transport. A RequestSpec holds everything needed to replay
the same request identically against another host.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from searchops_exceptions import ApplicationError, ResponseDecodeError


@dataclass(frozen=True)
class RequestSpec:
    """
    One HTTP request, independent of the host it is sent to.

    Attributes:
        method: HTTP method
        path: Absolute path, starting with '/'
        body: JSON-serializable body, or None
        params: URL query parameters
        read_timeout: Per-attempt read timeout override in seconds
        timeout_budget: Overall time allowed across every host attempt, in seconds
    """
    method: str
    path: str
    body: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, str]] = None
    read_timeout: Optional[float] = None
    timeout_budget: Optional[float] = None

    def __post_init__(self):
        if not self.path.startswith("/"):
            raise ValueError(f"path must start with '/', got {self.path!r}")
        if self.timeout_budget is not None and self.timeout_budget <= 0:
            raise ValueError("timeout_budget must be positive")

    def encoded_body(self) -> Optional[bytes]:
        """Serialize the body for the wire."""
        if self.body is None:
            return None
        return json.dumps(self.body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class Response:
    """
    A response received from a host.

    Any status code counts as a transport success; use raise_for_status()
    to turn a rejection into an ApplicationError.
    """
    status_code: int
    body: bytes
    host: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body as JSON."""
        if not self.body:
            return {}
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ResponseDecodeError(
                f"Invalid JSON in response from '{self.host}' (status {self.status_code}): {e}"
            ) from e

    def raise_for_status(self) -> "Response":
        """
        Raise ApplicationError for a non-2xx response.

        The service reports errors as {"message": ..., "status": ...}; the
        message is taken from there when present.

        Returns:
            self, for chaining on success
        """
        if self.ok:
            return self

        payload: Dict[str, Any] = {}
        message = f"HTTP {self.status_code}"
        try:
            decoded = self.json()
            if isinstance(decoded, dict):
                payload = decoded
                message = str(decoded.get("message", message))
        except ResponseDecodeError:
            text = self.body.decode("utf-8", errors="replace").strip()
            if text:
                message = text
        raise ApplicationError(self.status_code, message, payload)
