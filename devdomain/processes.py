"""
Process lookup and termination for listening TCP ports.

Uses psutil to find listening sockets. psutil needs elevated privileges to see
socket owners on some systems (macOS), so lsof is used as a fallback there.
"""

import logging
import shutil
import subprocess

import psutil

from .errors import ProcessLookupFailed, ProcessSignalError

logger = logging.getLogger("devdomain.processes")

LSOF_TIMEOUT = 5


def list_listening_pids(port: int) -> list[int]:
    """Return the ids of processes listening on TCP ``port`` (sorted, unique)"""
    try:
        connections = psutil.net_connections(kind="tcp")
    except (psutil.AccessDenied, PermissionError):
        logger.debug("psutil denied access to sockets; falling back to lsof")
        return _lsof_listening_pids(port)

    pids = set()
    for conn in connections:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        if conn.laddr.port == port and conn.pid:
            pids.add(conn.pid)
    return sorted(pids)


def _lsof_listening_pids(port: int) -> list[int]:
    if not shutil.which("lsof"):
        logger.warning("lsof not found; cannot resolve processes on port %d", port)
        return []

    try:
        result = subprocess.run(
            ["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN", "-t"],
            capture_output=True,
            text=True,
            check=False,
            timeout=LSOF_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ProcessLookupFailed(f"lsof failed for port {port}: {exc}") from exc

    # lsof exits 1 when nothing matches
    if result.returncode == 1 and not result.stdout.strip():
        return []
    if result.returncode != 0:
        raise ProcessLookupFailed(f"lsof failed for port {port}: {result.stderr.strip() or result.returncode}")

    pids = set()
    for line in result.stdout.splitlines():
        line = line.strip()
        if line.isdigit():
            pids.add(int(line))
    return sorted(pids)


def terminate_pids(pids: list[int], port: int | None = None) -> int:
    """
    Send SIGTERM (TerminateProcess on Windows) to every pid.

    Stops at the first failure: a process that survives while its route is
    removed would leave Caddy and the system out of sync.
    """
    for pid in pids:
        try:
            psutil.Process(pid).terminate()
        except psutil.Error as exc:
            raise ProcessSignalError(pid, port, exc) from exc
        logger.info("Sent SIGTERM to pid %d", pid, extra={"port": port})
    return len(pids)
