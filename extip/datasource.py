from __future__ import annotations
import ipaddress
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from .client_cache import ClientCache
from .config import DataSourceConfig
from .resolver import ExtIPError
from . import resolver

logger = logging.getLogger(__name__)


class DataSourceReadError(ExtIPError):
    pass


class ValidationError(ExtIPError):
    pass


@dataclass(frozen=True)
class ReadResult:
    ipaddress: str
    id: str


class IdentifierSource:
    """Hands out UTC timestamp ids (YYYYMMDDhhmmss + microseconds).

    Ids are strictly increasing for the lifetime of the source, even when
    the clock does not advance between two reads.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        stamp = int(datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f"))
        with self._lock:
            if stamp <= self._last:
                stamp = self._last + 1
            self._last = stamp
        return str(stamp)


_default_ids = IdentifierSource()


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def read(config: DataSourceConfig, cache: ClientCache, ids: IdentifierSource | None = None) -> ReadResult:
    """Run a single read invocation.

    Resolves the external IP through config.resolver, validates it when
    config.validate_ip is set and returns it with a new identifier.
    """
    if ids is None:
        ids = _default_ids

    try:
        ip = resolver.get_external_ip_from(config.resolver, config.client_timeout, cache)
    except ExtIPError as e:
        raise DataSourceReadError(f"error requesting external IP: {e}") from e

    # Anything goes unless validation was asked for
    if config.validate_ip and not is_valid_ip(ip):
        raise ValidationError(f"validate_ip was set to true, and information from resolver was not valid IP: {ip}")

    result = ReadResult(ipaddress=ip, id=ids.next())
    logger.info("external IP %s from %s (id=%s)", result.ipaddress, config.resolver, result.id)
    return result
