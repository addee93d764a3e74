"""
Startup flow: wire the dev server's domain into Caddy once it is listening.

``on_server_listening`` is the entry point for host servers. It never raises,
so a Caddy problem can not take the dev server down with it.
"""

import logging
from pathlib import Path

import httpx

from .admin import CaddyAdmin
from .bootstrap import PolicyBootstrapper
from .config import DomainOptions, ProjectConfig, compute_domain
from .errors import DomainConflictError
from .hosts import check_hosts_entry
from .output import print_domain_url
from .probe import is_port_active
from .reconcile import Probe, ReconcileOutcome, RouteReconciler

logger = logging.getLogger("devdomain.wiring")


async def wire_domain(
    port: int,
    options: DomainOptions,
    *,
    domain: str | None = None,
    cwd: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    probe: Probe = is_port_active,
) -> ReconcileOutcome:
    """
    Bootstrap Caddy and point the domain at ``port``.

    Raises DomainConflictError when the domain belongs to another live port
    and ``options.fail_on_active_domain`` is set; admin failures propagate.
    """
    domain = domain or compute_domain(options, cwd)

    async with CaddyAdmin(options.admin_url, options.server_id, transport=transport) as admin:
        await PolicyBootstrapper(admin, options.listen).ensure(domain)
        check_hosts_entry(domain)

        reconciler = RouteReconciler(
            admin,
            insert_first=options.insert_first,
            upstream_host=options.upstream_host,
            probe=probe,
            probe_timeout=options.probe_timeout,
        )
        outcome = await reconciler.reconcile(domain, port)

    if outcome.conflict:
        error = DomainConflictError(domain, outcome.existing_port, port)
        if options.fail_on_active_domain:
            raise error
        logger.warning("%s", error, extra={"domain": domain, "port": port})
        return outcome

    print_domain_url(domain, options.listen)
    return outcome


async def on_server_listening(port: int, options: DomainOptions | None = None, **kwargs) -> ReconcileOutcome | None:
    """
    Handle the host server's "now listening" event.

    Failures are logged and swallowed: the dev server keeps running without a
    domain mapping.
    """
    try:
        options = options or ProjectConfig().options()
        return await wire_domain(port, options, **kwargs)
    except DomainConflictError as e:
        logger.error("%s", e, extra={"domain": e.domain, "port": port})
    except Exception as e:
        logger.error("Domain setup failed: %s", e, extra={"port": port})
    return None
