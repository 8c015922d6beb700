"""Resolution of the durable store endpoint from configuration and probes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import quote

from runwatch.config import DiscoverySettings
from runwatch.utils import redact_url

from .exceptions import NoEndpointFoundError
from .probes import ContainerProbe, PortProbe, ProbeAttempt

PortCheck = Callable[[str, int], bool]
ContainerCheck = Callable[[str], bool]

LOWER_TIERS = frozenset({"dev", "development", "stage", "staging", "test", "local"})
PROD_TIERS = frozenset({"prod", "production"})

logger = logging.getLogger(__name__)


class _ProbeSession:
    """Memoizes probes for a single resolution and keeps the attempt log."""

    def __init__(self, host: str, port_check: PortCheck, container_check: ContainerCheck) -> None:
        self._host = host
        self._port_check = port_check
        self._container_check = container_check
        self._ports: dict[int, bool] = {}
        self._containers: dict[str, bool] = {}
        self.attempts: list[ProbeAttempt] = []

    def port_open(self, port: int) -> bool:
        if port not in self._ports:
            found = self._port_check(self._host, port)
            self._ports[port] = found
            self.attempts.append(ProbeAttempt("port", f"{self._host}:{port}", found))
        return self._ports[port]

    def container_running(self, name: str) -> bool:
        if name not in self._containers:
            found = self._container_check(name)
            self._containers[name] = found
            self.attempts.append(ProbeAttempt("container", name, found))
        return self._containers[name]


class EndpointResolver:
    """Priority chain: explicit URL, environment-aware probing, generic fallback."""

    def __init__(
        self,
        settings: DiscoverySettings,
        *,
        port_check: PortCheck | None = None,
        container_check: ContainerCheck | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._port_check = port_check or PortProbe(timeout_seconds=settings.probe_timeout_seconds)
        self._container_check = container_check or ContainerProbe()
        self._logger = logger or logging.getLogger(__name__)

    def resolve(self, environment: str) -> str:
        explicit = self._settings.database_url
        if explicit:
            self._logger.info("Using configured database URL %s", redact_url(explicit))
            return explicit

        tier = environment.strip().lower() or "dev"
        session = _ProbeSession(self._settings.host, self._port_check, self._container_check)
        primary = self._settings.primary_port
        secondary = self._settings.secondary_port

        if tier in LOWER_TIERS:
            url = self._resolve_lower_tier(tier, session)
            if url is not None:
                return url
        elif tier in PROD_TIERS:
            url = self._resolve_prod(session)
            if url is not None:
                return url

        for port in (primary, secondary):
            if session.port_open(port):
                self._logger.info("Detected database on port %s", port)
                return self._render(port)

        raise NoEndpointFoundError(
            f"Could not detect a database for environment '{environment}'",
            session.attempts,
            remediation=(
                "Set RUNWATCH_DATABASE_URL to an explicit endpoint",
                f"Start the local database container ({self._settings.dev_container})",
                f"Expose the database on port {primary} or {secondary}",
            ),
        )

    def _resolve_lower_tier(self, tier: str, session: _ProbeSession) -> str | None:
        dev_running = session.container_running(self._settings.dev_container)
        primary = self._settings.primary_port
        if session.port_open(primary):
            if dev_running:
                self._logger.info(
                    "Matched %s environment: container %s on port %s",
                    tier,
                    self._settings.dev_container,
                    primary,
                )
            else:
                self._logger.info(
                    "Detected database on port %s for %s environment (container not identified)",
                    primary,
                    tier,
                )
            return self._render(primary)

        if not dev_running and session.container_running(self._settings.prod_container):
            self._logger.warning(
                "%s environment active but only %s is running; start the dev database instead",
                tier,
                self._settings.prod_container,
            )
        return None

    def _resolve_prod(self, session: _ProbeSession) -> str | None:
        primary = self._settings.primary_port
        secondary = self._settings.secondary_port
        prod_container = self._settings.prod_container

        if session.container_running(prod_container):
            if session.port_open(primary):
                self._logger.info(
                    "Production container %s detected with port %s exposed",
                    prod_container,
                    primary,
                )
                return self._render(primary)
            if session.port_open(secondary):
                self._logger.warning(
                    "Production container %s does not expose port %s; falling back to port %s, "
                    "which may not be the production database",
                    prod_container,
                    primary,
                    secondary,
                )
                return self._render(secondary)
            raise NoEndpointFoundError(
                f"Production container {prod_container} is running "
                "but not reachable from this host",
                session.attempts,
                remediation=(
                    f"Expose port {primary} of {prod_container} to the host",
                    "Set RUNWATCH_DATABASE_URL to an explicit endpoint",
                    "Run inside the container network",
                ),
            )

        if session.port_open(primary):
            self._logger.warning(
                "Production environment active but no production container detected; "
                "connecting to the database on port %s",
                primary,
            )
            return self._render(primary)
        return None

    def _render(self, port: int) -> str:
        settings = self._settings
        credentials = ""
        if settings.username:
            credentials = quote(settings.username, safe="")
            if settings.password:
                credentials += ":" + quote(settings.password, safe="")
            credentials += "@"
        return settings.url_template.format(
            credentials=credentials,
            host=settings.host,
            port=port,
            database=settings.database_name,
        )


def resolve_endpoint(settings: DiscoverySettings, environment: str) -> str:
    """Resolve the store endpoint with the default probes."""

    return EndpointResolver(settings).resolve(environment)


__all__ = ["LOWER_TIERS", "PROD_TIERS", "EndpointResolver", "resolve_endpoint"]
