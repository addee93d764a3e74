"""
Rich-powered console output for devdomain.

Provides status messages, the domain table and the "where to browse" line.
"""

import re
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

# force_terminal=None respects TTY detection
console = Console(force_terminal=None, legacy_windows=True)
err_console = Console(stderr=True, force_terminal=None, legacy_windows=True)

# ASCII-safe icons for non-TTY output
_USE_ASCII = not sys.stdout.isatty()

ICON_OK = "+" if _USE_ASCII else "✓"
ICON_ERROR = "x" if _USE_ASCII else "✗"
ICON_INFO = "i" if _USE_ASCII else "ℹ"
ARROW = "->" if _USE_ASCII else "→"


def print_success(message: str):
    console.print(f"[green]{ICON_OK}[/green] {message}")


def print_error(message: str):
    err_console.print(f"[red]{ICON_ERROR}[/red] {escape(message)}", style="red", highlight=False)


def print_warning(message: str):
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str):
    console.print(f"[blue]{ICON_INFO}[/blue] {message}")


def port_label(ports: list[int]) -> Text:
    if not ports:
        return Text("unknown", style="yellow")
    return Text(":" + ", ".join(str(p) for p in ports), style="cyan")


def domains_table(groups) -> Table:
    """
    Table of mapped domains.

    Args:
        groups: Iterable of DomainGroup (domain, ports, indices)
    """
    table = Table(title="Mapped domains", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Domain", style="bold")
    table.add_column("Upstream")
    table.add_column("Routes", style="dim")

    for number, group in enumerate(groups, start=1):
        table.add_row(str(number), group.domain, port_label(group.ports), ", ".join(map(str, group.indices)))
    return table


def pick_https_port(listen: list[str]) -> int | None:
    """443 when listened on, otherwise the first listen port that is not 80"""
    ports = []
    for address in listen:
        match = re.search(r":(\d+)$", address)
        if match:
            ports.append(int(match.group(1)))
    if 443 in ports:
        return 443
    return next((p for p in ports if p != 80), None)


def domain_url(domain: str, listen: list[str]) -> str:
    port = pick_https_port(listen)
    if port and port != 443:
        return f"https://{domain}:{port}"
    return f"https://{domain}"


def print_domain_url(domain: str, listen: list[str]):
    console.print(f"  {ARROW}  [bold]Domain[/bold]: [cyan]{domain_url(domain, listen)}[/cyan] [dim](via caddy)[/dim]")
