"""
Route reconciliation: keep one domain pointed at the current dev server port.

Ports change on every restart, so the route for a fixed domain is re-pointed
whenever the bound process changes, but only once the previous upstream is
confirmed dead. The liveness probe is the only judge of "dead".
"""

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .admin import CaddyAdmin
from .probe import DEFAULT_PROBE_HOST, DEFAULT_PROBE_TIMEOUT, is_port_active
from .routes import Route, build_route, find_route, parse_routes

logger = logging.getLogger("devdomain.reconcile")

Probe = Callable[..., Awaitable[bool]]


class RouteState(enum.Enum):
    NO_ROUTE = "no_route"
    ROUTE_NO_PORT = "route_no_port"
    ROUTE_SAME_PORT = "route_same_port"
    ROUTE_DIFFERENT_PORT_ACTIVE = "route_different_port_active"
    ROUTE_DIFFERENT_PORT_INACTIVE = "route_different_port_inactive"


class ReconcileAction(enum.Enum):
    CREATED = "created"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Observation:
    state: RouteState
    route: Route | None = None

    @property
    def index(self) -> int | None:
        return self.route.index if self.route else None

    @property
    def existing_port(self) -> int | None:
        return self.route.port if self.route else None


@dataclass(frozen=True)
class ReconcileOutcome:
    domain: str
    port: int
    state: RouteState
    action: ReconcileAction
    index: int | None = None
    existing_port: int | None = None
    pruned: tuple[int, ...] = ()
    overlapping: tuple[int, ...] = ()

    @property
    def conflict(self) -> bool:
        return self.action is ReconcileAction.CONFLICT


class RouteReconciler:
    """Computes and applies the minimal route change for ``(domain, port)``"""

    def __init__(
        self,
        admin: CaddyAdmin,
        *,
        insert_first: bool = True,
        upstream_host: str = "localhost",
        probe: Probe = is_port_active,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ):
        self.admin = admin
        self.insert_first = insert_first
        self.upstream_host = upstream_host
        self.probe = probe
        self.probe_timeout = probe_timeout

    async def fetch_routes(self) -> list[Route]:
        return parse_routes(await self.admin.read(self.admin.routes_path))

    async def observe(self, routes: list[Route], domain: str, port: int) -> Observation:
        route = find_route(routes, domain)
        if route is None:
            return Observation(RouteState.NO_ROUTE)

        existing = route.port
        if existing is None:
            return Observation(RouteState.ROUTE_NO_PORT, route)
        if existing == port:
            return Observation(RouteState.ROUTE_SAME_PORT, route)
        host = route.upstream_host or DEFAULT_PROBE_HOST
        if await self.probe(existing, host=host, timeout=self.probe_timeout):
            return Observation(RouteState.ROUTE_DIFFERENT_PORT_ACTIVE, route)
        return Observation(RouteState.ROUTE_DIFFERENT_PORT_INACTIVE, route)

    async def reconcile(self, domain: str, port: int) -> ReconcileOutcome:
        observation = await self.observe(await self.fetch_routes(), domain, port)
        state = observation.state

        if state is RouteState.ROUTE_DIFFERENT_PORT_ACTIVE:
            return ReconcileOutcome(
                domain,
                port,
                state,
                ReconcileAction.CONFLICT,
                index=observation.index,
                existing_port=observation.existing_port,
            )

        if state is RouteState.NO_ROUTE:
            await self._create(domain, port)
            action = ReconcileAction.CREATED
        elif state is RouteState.ROUTE_SAME_PORT:
            logger.debug("Route for %s already points at port %d", domain, port)
            action = ReconcileAction.UNCHANGED
        else:
            await self._replace(observation.index, domain, port)
            action = ReconcileAction.REPLACED

        index, pruned, overlapping = await self._prune_duplicates(domain)
        return ReconcileOutcome(
            domain,
            port,
            state,
            action,
            index=index,
            existing_port=observation.existing_port,
            pruned=pruned,
            overlapping=overlapping,
        )

    async def _create(self, domain: str, port: int) -> None:
        route = build_route(domain, port, self.upstream_host)
        if self.insert_first:
            await self.admin.insert(self.admin.routes_path, 0, route)
        else:
            await self.admin.append(self.admin.routes_path, route)
        logger.info("Mapped %s -> %s:%d", domain, self.upstream_host, port, extra={"domain": domain, "port": port})

    async def _replace(self, index: int, domain: str, port: int) -> None:
        await self.admin.replace(f"{self.admin.routes_path}/{index}", build_route(domain, port, self.upstream_host))
        logger.info(
            "Re-pointed %s -> %s:%d (route %d)",
            domain,
            self.upstream_host,
            port,
            index,
            extra={"domain": domain, "port": port},
        )

    async def _prune_duplicates(self, domain: str) -> tuple[int | None, tuple[int, ...], tuple[int, ...]]:
        """
        Delete routes shadowed by the first match for ``domain``.

        Re-reads the list since a create may have shifted every index. Only
        routes whose matchers are host-only and name nothing but ``domain`` are
        removed; indices are deleted highest first so the remaining ones stay
        valid.

        Returns the primary index, the deleted indices (pre-deletion positions)
        and the kept routes that still match ``domain`` (post-deletion positions).
        """
        routes = await self.fetch_routes()
        primary = find_route(routes, domain)
        if primary is None:
            return None, (), ()

        shadowed: list[int] = []
        kept: list[int] = []
        for route in routes[primary.index + 1 :]:
            if not route.matches(domain):
                continue
            if route.only_matches(domain):
                shadowed.append(route.index)
            else:
                kept.append(route.index)

        deleted = tuple(sorted(shadowed, reverse=True))
        for index in deleted:
            await self.admin.delete(f"{self.admin.routes_path}/{index}")
            logger.info("Removed duplicate route %d for %s", index, domain)

        overlapping = tuple(index - sum(1 for d in deleted if d < index) for index in kept)
        for index in overlapping:
            logger.warning(
                "Route %d also matches %s alongside other hosts or matchers; leaving it",
                index,
                domain,
                extra={"domain": domain},
            )
        return primary.index, deleted, overlapping
