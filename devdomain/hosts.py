"""Advisory hosts-file check for .local domains"""

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger("devdomain.hosts")


def hosts_path() -> Path:
    if sys.platform == "win32":
        system_root = os.environ.get("SystemRoot", r"C:\Windows")
        return Path(system_root) / "System32" / "drivers" / "etc" / "hosts"
    return Path("/etc/hosts")


def has_hosts_entry(domain: str, content: str) -> bool:
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if domain in line.split("#", 1)[0].split()[1:]:
            return True
    return False


def hosts_hint(domain: str, path: Path) -> str:
    """Command that adds the loopback entry for ``domain`` to ``path``"""
    if sys.platform == "win32":
        return f"Add-Content -Path '{path}' -Value '127.0.0.1 {domain}'  (elevated PowerShell)"
    return f"sudo bash -c \"echo '127.0.0.1 {domain}' >> {path}\""


def check_hosts_entry(domain: str, path: Path | None = None) -> bool | None:
    """
    Warn when a ``.local`` domain has no hosts entry.

    Returns True/False for present/missing, None when not applicable or the
    file is unreadable.
    """
    if not domain.endswith(".local"):
        return None
    path = path or hosts_path()
    hint = hosts_hint(domain, path)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.warning("Could not read %s to verify %s. If requests fail, add:\n    %s", path, domain, hint)
        return None

    if has_hosts_entry(domain, content):
        return True
    logger.warning("Missing %s entry for %s. Add it with:\n    %s", path, domain, hint)
    return False
