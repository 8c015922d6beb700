"""Durable store endpoint discovery."""

from .exceptions import DiscoveryError, NoEndpointFoundError
from .probes import ContainerProbe, PortProbe, ProbeAttempt
from .resolver import EndpointResolver, resolve_endpoint

__all__ = [
    "ContainerProbe",
    "DiscoveryError",
    "EndpointResolver",
    "NoEndpointFoundError",
    "PortProbe",
    "ProbeAttempt",
    "resolve_endpoint",
]
