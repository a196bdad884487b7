from __future__ import annotations

from typing import Dict, Type

from storediag.connectors.base import ConnectorDescriptor, TargetURI
from storediag.exception import UnknownConnectorError


class ConnectorRegistry:
    """
    Registry + factory for connector descriptors, keyed by URI scheme.

    Supports decorator registration:
        @registry.register("s3a", "s3")
        class S3ADescriptor: ...

    And factory instantiation bound to the target URI:
        descriptor = registry.create("s3a://bucket/path")
    """

    def __init__(self) -> None:
        self._items: Dict[str, Type] = {}

    def register(self, *schemes: str):
        def deco(cls):
            names = tuple(s.lower() for s in schemes)
            for scheme in names:
                self._items[scheme] = cls
            # subclasses registered elsewhere get their own tuple
            cls.schemes = tuple(dict.fromkeys(cls.__dict__.get("schemes", ()) + names))
            return cls
        return deco

    def get(self, scheme: str):
        key = (scheme or "").lower()
        if key not in self._items:
            raise UnknownConnectorError(key, self.list())
        return self._items[key]

    def list(self) -> list[str]:
        return sorted(self._items.keys())

    def create(self, uri: str | TargetURI) -> ConnectorDescriptor:
        target = uri if isinstance(uri, TargetURI) else TargetURI.parse(uri)
        Cls = self.get(target.scheme)
        return Cls(target)


# Singleton registry used by core + plugins
REGISTRY = ConnectorRegistry()


def register_connector(*schemes: str):
    return REGISTRY.register(*schemes)


def get_connector(scheme: str):
    return REGISTRY.get(scheme)


def list_connectors() -> list[str]:
    return REGISTRY.list()


def create_connector(uri: str | TargetURI) -> ConnectorDescriptor:
    return REGISTRY.create(uri)
