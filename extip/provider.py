from __future__ import annotations
import logging
from typing import Any, Mapping

from .client_cache import ClientCache, PoolSettings
from .config import SCHEMA, ConfigError, DataSourceConfig
from .datasource import IdentifierSource, ReadResult
from . import datasource

logger = logging.getLogger(__name__)

DATA_SOURCES: dict[str, dict[str, dict[str, Any]]] = {
    "extip": SCHEMA,
}


class Provider:
    """Entry point a host uses to read the ``extip`` data source.

    One provider owns one client cache and one identifier source; create
    it once per process and reuse it for every read.
    """

    def __init__(self, cache: ClientCache | None = None, pool: PoolSettings | None = None):
        self.cache = cache if cache is not None else ClientCache(pool)
        self.ids = IdentifierSource()
        self.data_sources = DATA_SOURCES

    def validate(self) -> None:
        """Check that every data source schema is internally consistent."""
        for name, schema in self.data_sources.items():
            for key, attr in schema.items():
                where = f"{name}.{key}"
                if "type" not in attr:
                    raise ConfigError(f"{where}: type is required")
                computed = attr.get("computed", False)
                optional = attr.get("optional", False)
                if computed and optional:
                    raise ConfigError(f"{where}: computed attributes cannot be optional")
                if not computed and not optional:
                    raise ConfigError(f"{where}: one of optional or computed must be set")
                if "default" in attr:
                    if computed:
                        raise ConfigError(f"{where}: default is not valid with computed")
                    if not isinstance(attr["default"], attr["type"]):
                        raise ConfigError(f"{where}: default is not a {attr['type'].__name__}")

    def read_data_source(self, name: str, values: Mapping[str, Any] | None = None) -> ReadResult:
        if name not in self.data_sources:
            raise ConfigError(f'The provider does not support data source "{name}"')
        config = DataSourceConfig.from_mapping(values)
        return self.read(config)

    def read(self, config: DataSourceConfig) -> ReadResult:
        logger.debug("reading data source with %s", config)
        return datasource.read(config, self.cache, self.ids)
