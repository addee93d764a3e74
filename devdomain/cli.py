"""devdomain command line: inspect and tear down Caddy domain mappings"""

import argparse
import asyncio
import os
import sys

import httpx
import yaml
from rich.prompt import Prompt

from . import __version__
from .admin import CaddyAdmin
from .config import ProjectConfig
from .errors import DevDomainError, DomainNotFoundError, PortNotFoundError
from .inventory import DomainGroup, RouteInventory
from .output import ARROW, console, domains_table, port_label, print_error, print_success, print_warning
from .structured_logging import setup_logging

# Accepted (and ignored) as a leading verb: `devdomain rm myapp.local`
VERBS = {"delete", "unmap", "rm"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devdomain",
        description="Inspect and remove domains mapped into Caddy by devdomain",
        usage="devdomain [delete|unmap|rm] [domain] [--admin-url URL] [--server-id ID] [--kill|--unmap]",
    )
    parser.add_argument("--version", action="version", version=f"devdomain {__version__}")
    parser.add_argument("domain", nargs="?", help="Domain to manage (prompted for when omitted)")
    parser.add_argument("--admin-url", help="Caddy admin API base URL (default: http://127.0.0.1:2019)")
    parser.add_argument("--server-id", help="Caddy apps.http server id (default: devdomain)")
    parser.add_argument("--list", action="store_true", help="List mapped domains and exit")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--kill", dest="mode", action="store_const", const="kill", help="Kill the process on the port, then unmap")
    mode.add_argument("--unmap", dest="mode", action="store_const", const="unmap", help="Unmap only")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] in VERBS:
        argv = argv[1:]
    return build_parser().parse_args(argv)


def choose_domain(groups: dict[str, DomainGroup]) -> str:
    ordered = list(groups.values())
    console.print(domains_table(ordered))
    numbers = [str(i) for i in range(1, len(ordered) + 1)]
    pick = Prompt.ask("Select a domain to manage", choices=numbers + list(groups), show_choices=False)
    if pick in groups:
        return pick
    return ordered[int(pick) - 1].domain


def choose_action(group: DomainGroup) -> str:
    target = group.kill_candidate or (", ".join(map(str, group.ports)) if group.ports else "unknown")
    console.print(f"[bold]{group.domain}[/bold] {ARROW} ", port_label(group.ports))
    console.print(f"  kill    Kill process on port {target} and unmap")
    console.print("  unmap   Unmap only")
    console.print("  cancel  Cancel")
    return Prompt.ask("What do you want to do?", choices=["kill", "unmap", "cancel"], default="cancel")


def choose_port(group: DomainGroup) -> int:
    pick = Prompt.ask("Multiple ports found. Which one should be killed?", choices=[str(p) for p in group.ports])
    return int(pick)


async def manage(args: argparse.Namespace, transport: httpx.AsyncBaseTransport | None = None) -> int:
    options = ProjectConfig().options(admin_url=args.admin_url, server_id=args.server_id)

    async with CaddyAdmin(options.admin_url, options.server_id, transport=transport) as admin:
        inventory = RouteInventory(admin)
        groups = await inventory.groups()
        if not groups:
            print_warning("No mapped domains found.")
            return 0
        if args.list:
            console.print(domains_table(groups.values()))
            return 0

        domain = args.domain or choose_domain(groups)
        group = groups.get(domain)
        if group is None:
            raise DomainNotFoundError(domain)

        action = args.mode or choose_action(group)
        if action == "cancel":
            return 0

        kill_port = None
        if action == "kill":
            kill_port = group.kill_candidate
            if kill_port is None and group.needs_port_choice:
                kill_port = choose_port(group)
            if kill_port is None:
                raise PortNotFoundError(domain)

        with console.status(f"Tearing down {domain}..."):
            killed, _deleted = await inventory.teardown(domain, kill_port)

        if kill_port is not None:
            if killed:
                print_success(f"Killed {killed} process(es) on port {kill_port}.")
            else:
                print_warning(f"No process found listening on port {kill_port}.")
        print_success(f"Unmapped {domain}.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit status"""
    setup_logging(level=os.getenv("DEVDOMAIN_LOG_LEVEL", "WARNING"))
    args = parse_args(argv)
    try:
        return asyncio.run(manage(args))
    except (DevDomainError, ValueError, yaml.YAMLError) as e:
        print_error(str(e))
        return 1
    except KeyboardInterrupt:
        console.print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
