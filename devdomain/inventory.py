"""
Route inventory and teardown.

Reads the managed server's routes, groups them by domain and removes them.
Never creates anything.
"""

import logging
from dataclasses import dataclass, field

from .admin import CaddyAdmin
from .errors import DomainNotFoundError, PortNotFoundError
from .processes import list_listening_pids, terminate_pids
from .routes import Route, parse_routes

logger = logging.getLogger("devdomain.inventory")


@dataclass(frozen=True)
class DomainEntry:
    domain: str
    route_index: int
    port: int | None


@dataclass
class DomainGroup:
    """All routes that answer for one domain"""

    domain: str
    ports: list[int] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)

    def add(self, entry: DomainEntry) -> None:
        if entry.port is not None and entry.port not in self.ports:
            self.ports.append(entry.port)
        if entry.route_index not in self.indices:
            self.indices.append(entry.route_index)

    @property
    def kill_candidate(self) -> int | None:
        """The port to kill when it is unambiguous"""
        return self.ports[0] if len(self.ports) == 1 else None

    @property
    def needs_port_choice(self) -> bool:
        return len(self.ports) > 1


def collect_entries(routes: list[Route]) -> list[DomainEntry]:
    """One entry per (route, host) pair, in route order"""
    entries = []
    for route in routes:
        port = route.port
        for host in route.hosts:
            entries.append(DomainEntry(domain=host, route_index=route.index, port=port))
    return entries


def group_entries(entries: list[DomainEntry]) -> dict[str, DomainGroup]:
    groups: dict[str, DomainGroup] = {}
    for entry in entries:
        groups.setdefault(entry.domain, DomainGroup(entry.domain)).add(entry)
    return groups


def deletion_order(indices: list[int]) -> list[int]:
    """
    Order route indices for positional deletion.

    Deleting shifts every later position down by one, so indices are removed
    highest first; each remaining index is still valid when its turn comes.
    """
    return sorted(set(indices), reverse=True)


class RouteInventory:
    """Enumerates and tears down routes of one Caddy server"""

    def __init__(self, admin: CaddyAdmin):
        self.admin = admin

    async def routes(self) -> list[Route]:
        return parse_routes(await self.admin.read(self.admin.routes_path))

    async def entries(self) -> list[DomainEntry]:
        return collect_entries(await self.routes())

    async def groups(self) -> dict[str, DomainGroup]:
        return group_entries(await self.entries())

    async def group(self, domain: str) -> DomainGroup:
        groups = await self.groups()
        if domain not in groups:
            raise DomainNotFoundError(domain)
        return groups[domain]

    def kill_port(self, port: int) -> int:
        """Terminate whatever listens on ``port``; returns how many processes were signalled"""
        pids = list_listening_pids(port)
        if not pids:
            logger.info("No process found listening on port %d", port)
            return 0
        return terminate_pids(pids, port)

    async def unmap(self, domain: str, group: DomainGroup | None = None) -> list[int]:
        """Delete every route of ``domain``; returns indices in deletion order"""
        group = group or await self.group(domain)
        order = deletion_order(group.indices)
        for index in order:
            await self.admin.delete(f"{self.admin.routes_path}/{index}")
        logger.info("Unmapped %s (routes %s)", domain, ", ".join(map(str, order)), extra={"domain": domain})
        return order

    async def teardown(self, domain: str, kill_port: int | None = None, *, kill: bool = False) -> tuple[int, list[int]]:
        """
        Optionally kill the process on a port, then unmap the domain.

        ``kill`` without an explicit ``kill_port`` uses the domain's only known
        port. Both steps work from one snapshot of the route list; a signal
        failure aborts before anything is deleted.
        """
        group = await self.group(domain)
        killed = 0
        if kill or kill_port is not None:
            port = kill_port if kill_port is not None else group.kill_candidate
            if port is None:
                raise PortNotFoundError(domain)
            killed = self.kill_port(port)
        deleted = await self.unmap(domain, group)
        return killed, deleted
