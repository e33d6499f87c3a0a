#!/usr/bin/env python3
"""Client for the external Huffman encoding/decoding service.

Environment Variables:
    HUFFMAN_API_URL: base URL of the service (default: http://localhost:8080)
    HUFFMAN_API_TIMEOUT: request timeout in seconds (default: 60)
"""
import logging
import os
from typing import Any, Dict, Optional

import requests

log = logging.getLogger("huffservice")

API_URL = os.environ.get("HUFFMAN_API_URL", "http://localhost:8080")
API_TIMEOUT = float(os.environ.get("HUFFMAN_API_TIMEOUT", "60"))

ENDPOINTS = {
    "encode": "/api/files/upload",
    "decode": "/api/files/decode",
}


class ServiceError(RuntimeError):
    """The service could not be reached or did not return a usable body."""


def endpoint_url(mode: str, api_url: Optional[str] = None) -> str:
    if mode not in ENDPOINTS:
        raise ValueError(f"Unknown mode '{mode}' (expected one of {', '.join(ENDPOINTS)})")
    return (api_url or API_URL).rstrip("/") + ENDPOINTS[mode]


def process_file(filename: str, data: bytes, mode: str = "encode",
                 api_url: Optional[str] = None,
                 timeout: Optional[float] = None) -> Dict[str, Any]:
    """
    Upload one file and return the decoded JSON body.
    Raises ServiceError on transport failures, non-2xx status or a non-object body.
    """
    url = endpoint_url(mode, api_url)
    log.info(f"POST {url} ({filename}, {len(data)} bytes)")
    try:
        resp = requests.post(url, files={"file": (filename, data)},
                             timeout=timeout if timeout is not None else API_TIMEOUT)
    except requests.exceptions.RequestException as e:
        log.error(f"Request to {url} failed: {e}")
        raise ServiceError(f"Could not {mode} file: {e}") from e

    if not resp.ok:
        log.error(f"{url} answered {resp.status_code} {resp.reason}")
        raise ServiceError(f"Could not {mode} file: {resp.status_code} {resp.reason}")

    try:
        body = resp.json()
    except ValueError as e:
        raise ServiceError(f"Could not {mode} file: response is not JSON") from e
    if not isinstance(body, dict):
        raise ServiceError(f"Could not {mode} file: unexpected response body")
    return body
