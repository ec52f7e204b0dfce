"""Shared HTTP helpers used by the package index client.

Encapsulates request/timeout/retry handling so the client avoids
duplicating try/except blocks. Transport failures surface as
RemoteQueryFailed so callers can isolate them per module.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.errors import RemoteQueryFailed
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": Constants.USER_AGENT,
}


def robust_request(
    method: str,
    url: str,
    *,
    context: str,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform an HTTP request with timeout, retries and DEBUG traces.

    Server errors (5xx), timeouts and connection errors are retried with
    exponential backoff. Any other response is returned to the caller.

    Raises:
        RemoteQueryFailed: when every attempt failed.
    """
    safe_target = safe_url(url)
    timeout = Constants.REQUEST_TIMEOUT if timeout is None else timeout
    retries = Constants.HTTP_RETRY_MAX if retries is None else max(1, retries)
    headers = dict(DEFAULT_HEADERS)
    headers.update(kwargs.pop("headers", None) or {})

    last_error = None
    for attempt in range(retries):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action=method,
                        target=safe_target,
                        context=context,
                        attempt=attempt + 1,
                    ),
                )
            try:
                res = requests.request(method, url, timeout=timeout, headers=headers, **kwargs)
            except requests.Timeout:
                last_error = f"timed out after {timeout} seconds"
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_error = str(exc)
                continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action=method,
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context,
                    ),
                )
            if res.status_code >= 500:
                last_error = f"server error {res.status_code}"
                continue
            return res

    logger.warning(
        "%s request failed after %d attempts: %s",
        context,
        retries,
        last_error,
        extra=extra_context(
            event="http_exception",
            component="http_client",
            action=method,
            outcome="retries_exhausted",
            target=safe_target,
        ),
    )
    raise RemoteQueryFailed(f"{context}: {method} {safe_target} failed: {last_error}")


def _decode(res: requests.Response, url: str, context: str) -> Any:
    try:
        return json.loads(res.text)
    except json.JSONDecodeError as exc:
        raise RemoteQueryFailed(f"{context}: couldn't decode JSON from {safe_url(url)}") from exc


def get_json(
    url: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Optional[Any]]:
    """GET url and parse the JSON body.

    Returns:
        Tuple of (status_code, parsed_json); parsed_json is None for 404.

    Raises:
        RemoteQueryFailed: transport failure, unexpected status or bad JSON.
    """
    res = robust_request("GET", url, context=context, headers=headers, **kwargs)
    if res.status_code == 404:
        return res.status_code, None
    if res.status_code != 200:
        raise RemoteQueryFailed(f"{context}: unexpected status {res.status_code}")
    return res.status_code, _decode(res, url, context)


def post_json(
    url: str,
    payload: Dict[str, Any],
    *,
    context: str,
    **kwargs: Any,
) -> Tuple[int, Any]:
    """POST a JSON payload and parse the JSON body.

    Raises:
        RemoteQueryFailed: transport failure, non-200 status or bad JSON.
    """
    res = robust_request(
        "POST",
        url,
        context=context,
        data=json.dumps(payload),
        headers={"Content-Type": "application/json"},
        **kwargs,
    )
    if res.status_code != 200:
        raise RemoteQueryFailed(f"{context}: unexpected status {res.status_code}")
    return res.status_code, _decode(res, url, context)
