"""
devdomain - keep Caddy routes in sync with local dev servers
Maps a stable https://<name>.local domain onto whatever port the dev server got
"""

__version__ = "1.0.0"

from .admin import CaddyAdmin
from .bootstrap import PolicyBootstrapper
from .config import DomainOptions, ProjectConfig, compute_domain
from .inventory import DomainEntry, DomainGroup, RouteInventory
from .probe import is_port_active
from .reconcile import ReconcileAction, ReconcileOutcome, RouteReconciler, RouteState
from .runner import DomainRunner, run
from .wiring import on_server_listening, wire_domain

__all__ = [
    "CaddyAdmin",
    "PolicyBootstrapper",
    "RouteReconciler",
    "RouteState",
    "ReconcileAction",
    "ReconcileOutcome",
    "RouteInventory",
    "DomainEntry",
    "DomainGroup",
    "DomainOptions",
    "ProjectConfig",
    "compute_domain",
    "is_port_active",
    "on_server_listening",
    "wire_domain",
    "DomainRunner",
    "run",
    "__version__",
]
