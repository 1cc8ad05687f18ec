import json
import logging
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Request failed"
_REDACTED_HEADERS = {"x-api-key", "x-session-token", "authorization", "proxy-authorization"}
_MAX_LOG_PAYLOAD = 2048


@dataclass(frozen=True)
class ApiResponse:
    """
    Normalised outcome of one HTTP call.

    Exactly one of ``data``/``error`` is meaningful: ``error`` is ``None`` for
    2xx responses. ``exception`` is set only for transport-level failures.
    """

    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    body: Any = None
    exception: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def network_failure(self) -> bool:
        return self.exception is not None


def extract_error(payload: Any, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    if isinstance(payload, dict):
        for key in ("error", "detail"):
            value = payload.get(key)
            if value:
                return value if isinstance(value, str) else json.dumps(value)
    return default


def _parse_json(raw_body: str) -> Any:
    if not raw_body.strip():
        return None
    return json.loads(raw_body)


def _sanitize_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    masked_headers: Dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in _REDACTED_HEADERS:
            masked_headers[key] = "***redacted***"
        else:
            masked_headers[key] = value
    return masked_headers


def _truncate_for_log(data: Any) -> str:
    try:
        text = json.dumps(data)
    except (TypeError, ValueError):
        text = str(data)
    if len(text) <= _MAX_LOG_PAYLOAD:
        return text
    return text[:_MAX_LOG_PAYLOAD] + "...<truncated>"


class HttpTransport:
    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    def request(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResponse:
        merged_headers = {"Content-Type": "application/json"}
        merged_headers.update(headers or {})
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url, data=data, headers=merged_headers, method=method.upper()
        )
        logger.debug(
            "HTTP request method=%s url=%s headers=%s body=%s",
            method.upper(),
            url,
            _sanitize_headers(merged_headers),
            _truncate_for_log(body),
        )

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                status = response.status
                raw_body = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            return self._error_response(url, exc)
        except (urllib.error.URLError, socket.timeout, ConnectionError) as exc:
            reason = getattr(exc, "reason", None) or exc
            logger.warning("Failed to reach %s: %s", url, reason)
            return ApiResponse(error=str(reason) or "Network error", exception=exc)

        try:
            payload = _parse_json(raw_body)
        except json.JSONDecodeError:
            logger.warning("Non-JSON response from %s status=%s", url, status)
            return ApiResponse(
                error=f"Invalid JSON response from {url}",
                status_code=status,
                body=raw_body,
            )

        logger.debug(
            "HTTP response status=%s url=%s body=%s",
            status,
            url,
            _truncate_for_log(payload),
        )
        return ApiResponse(data=payload, status_code=status, body=payload)

    @staticmethod
    def _error_response(url: str, exc: urllib.error.HTTPError) -> ApiResponse:
        raw_body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        try:
            payload = _parse_json(raw_body)
        except json.JSONDecodeError:
            payload = raw_body

        message = extract_error(payload)
        logger.debug(
            "HTTP error status=%s url=%s body=%s", exc.code, url, _truncate_for_log(payload)
        )
        return ApiResponse(error=message, status_code=exc.code, body=payload)
