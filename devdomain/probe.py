"""TCP liveness probe for upstream ports"""

import asyncio
import logging

logger = logging.getLogger("devdomain.probe")

DEFAULT_PROBE_HOST = "127.0.0.1"
DEFAULT_PROBE_TIMEOUT = 0.35


async def is_port_active(port: int, host: str = DEFAULT_PROBE_HOST, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """
    Check whether something accepts TCP connections on ``host:port``.

    Best effort: a timeout, a refusal or any socket error counts as "not
    listening". Never raises. The close handshake shares the same timeout.
    """
    try:
        _reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, OverflowError, asyncio.TimeoutError) as exc:
        logger.debug("Port %s:%s inactive (%s)", host, port, exc.__class__.__name__)
        return False

    writer.close()
    try:
        await asyncio.wait_for(writer.wait_closed(), timeout)
    except (OSError, asyncio.TimeoutError):
        logger.debug("Port %s:%s did not finish closing", host, port)
    return True
