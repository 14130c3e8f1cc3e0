from __future__ import annotations
import logging
import time

import requests

from .client_cache import ClientCache

logger = logging.getLogger(__name__)

# Raised by requests before anything is sent
_REQUEST_CREATION_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
)


class ExtIPError(RuntimeError):
    pass


class RequestCreationError(ExtIPError):
    pass


class TransportError(ExtIPError):
    pass


RequestError = TransportError


class RequestTimeoutError(TransportError):
    pass


class HTTPStatusError(ExtIPError):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP request error. Response code: {status_code}")
        self.status_code = status_code


class BodyReadError(ExtIPError):
    pass


def get_external_ip_from(service: str, timeout: int, cache: ClientCache) -> str:
    """GET ``service`` and return the response body with surrounding whitespace removed.

    ``timeout`` is in milliseconds and bounds the whole call, body
    included; 0 waits forever. The body is returned as-is otherwise,
    whether or not it looks like an IP address. Bytes that are not valid
    UTF-8 are kept as surrogate escapes, so
    ``ip.encode("utf-8", "surrogateescape")`` gives back the raw body.
    """
    client = cache.get(timeout)
    deadline = time.monotonic() + timeout / 1000 if timeout else None
    logger.debug("requesting external IP from %s (timeout=%sms)", service, timeout)

    try:
        resp = client.get(service)
    except _REQUEST_CREATION_ERRORS as e:
        raise RequestCreationError(f"failed to create request: {e}") from e
    except requests.exceptions.Timeout as e:
        raise RequestTimeoutError(str(e)) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(str(e)) from e

    with resp:
        if resp.status_code != 200:
            raise HTTPStatusError(resp.status_code)
        chunks: list[bytes] = []
        try:
            # one byte at a time so a slow sender cannot outlast the deadline
            for chunk in resp.iter_content(chunk_size=1):
                if deadline is not None and time.monotonic() > deadline:
                    raise RequestTimeoutError(
                        f"request to {service} exceeded the client timeout of {timeout}ms while reading body"
                    )
                chunks.append(chunk)
        except requests.exceptions.RequestException as e:
            raise BodyReadError(str(e)) from e

    ip = b"".join(chunks).decode("utf-8", errors="surrogateescape").strip()
    logger.debug("resolver %s answered %r", service, ip)
    return ip
