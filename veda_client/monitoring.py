"""Observability utils"""

import httpx
from aws_lambda_powertools import Logger

logger: Logger = Logger(service="veda-client", namespace="veda-docs")

_REDACTED_HEADERS = {"authorization", "cookie"}


def _headers(headers: httpx.Headers) -> dict:
    return {
        k: ("***" if k.lower() in _REDACTED_HEADERS else v) for k, v in headers.items()
    }


def log_request(request: httpx.Request) -> None:
    """httpx event hook adding request context to logs"""
    ctx = {
        "method": request.method,
        "url": str(request.url),
        "headers": _headers(request.headers),
    }
    logger.append_keys(request=ctx)
    logger.debug("Sending request")


def log_response(response: httpx.Response) -> None:
    """httpx event hook logging response status"""
    request = response.request
    logger.info(
        "Received response",
        extra={
            "status_code": response.status_code,
            "route": f"{request.method} {request.url.path}",
        },
    )
    logger.remove_keys(["request"])


EVENT_HOOKS = {"request": [log_request], "response": [log_response]}
