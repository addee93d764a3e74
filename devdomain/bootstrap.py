"""
HTTPS-first bootstrap of the Caddy server entry and TLS automation policy.

Every step is create-if-absent and never overwrites configuration it did not
create, so a partially applied bootstrap heals on the next run.
"""

import logging
from collections.abc import Iterable

from .admin import POLICIES_PATH, CaddyAdmin
from .routes import build_tls_policy, parse_policies

logger = logging.getLogger("devdomain.bootstrap")

DEFAULT_LISTEN = [":443", ":80"]


def merge_listen(current: Iterable[str] | None, desired: Iterable[str]) -> list[str]:
    """Union of listen addresses: current order first, new addresses appended"""
    merged: list[str] = []
    for address in [*(current or []), *desired]:
        if address not in merged:
            merged.append(address)
    return merged


class PolicyBootstrapper:
    """Ensures the managed server and a TLS policy for a domain exist"""

    def __init__(self, admin: CaddyAdmin, listen: list[str] | None = None):
        self.admin = admin
        self.listen = list(listen or DEFAULT_LISTEN)

    async def ensure(self, domain: str) -> None:
        root = await self.admin.read("")
        if root is None:
            await self.seed(domain)
            return
        await self.ensure_server()
        await self.ensure_tls_policy(domain)

    async def seed(self, domain: str) -> None:
        """Load a fresh config: one server and one internal TLS policy"""
        await self.admin.load(
            {
                "apps": {
                    "http": {"servers": {self.admin.server_id: {"listen": self.listen, "routes": []}}},
                    "tls": {"automation": {"policies": [build_tls_policy(domain)]}},
                }
            }
        )
        logger.info(
            "Initialized Caddy config; server '%s' on %s; TLS internal for %s",
            self.admin.server_id,
            ", ".join(self.listen),
            domain,
        )

    async def ensure_server(self) -> None:
        await self.admin.ensure("apps", {})
        await self.admin.ensure("apps/http", {"servers": {}})
        await self.admin.ensure("apps/http/servers", {})

        server_path = self.admin.server_path
        if await self.admin.read(server_path) is None:
            await self.admin.create(server_path, {"listen": self.listen, "routes": []})
            logger.info("Created server '%s' on %s", self.admin.server_id, ", ".join(self.listen))
            return

        await self._reconcile_listen(f"{server_path}/listen")
        await self._enable_automatic_https(f"{server_path}/automatic_https")

    async def _reconcile_listen(self, path: str) -> None:
        current = await self.admin.read(path)
        if current is None:
            await self.admin.create(path, self.listen)
            logger.info("Set '%s' listen -> %s", self.admin.server_id, ", ".join(self.listen))
            return
        if not isinstance(current, list):
            current = []

        merged = merge_listen(current, self.listen)
        if merged != current:
            await self.admin.replace(path, merged)
            logger.info("Updated '%s' listen -> %s", self.admin.server_id, ", ".join(merged))

    async def _enable_automatic_https(self, path: str) -> None:
        current = await self.admin.read(path)
        if isinstance(current, dict) and current.get("disable") is True:
            await self.admin.replace(path, {**current, "disable": False})
            logger.info("Re-enabled automatic HTTPS on '%s'", self.admin.server_id)

    async def ensure_tls_policy(self, domain: str) -> None:
        await self.admin.ensure("apps", {})
        await self.admin.ensure("apps/tls", {"automation": {"policies": []}})
        await self.admin.ensure("apps/tls/automation", {"policies": []})
        policies = parse_policies(await self.admin.ensure(POLICIES_PATH, []))

        if any(policy.covers_internally(domain) for policy in policies):
            logger.debug("TLS automation policy already present for %s", domain)
            return

        await self.admin.append(POLICIES_PATH, build_tls_policy(domain))
        logger.info("Added TLS automation policy (internal) for %s", domain)
