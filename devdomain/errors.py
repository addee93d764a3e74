"""Exception hierarchy for devdomain"""


class DevDomainError(Exception):
    """Base class for every error raised by devdomain"""


class AdminError(DevDomainError):
    """Caddy admin API call failed"""


class AdminAPIError(AdminError):
    """Caddy answered with a non-success status"""

    def __init__(self, method: str, url: str, status_code: int, reason: str = "", body: str = ""):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"{method} {url} failed: HTTP {status_code} {reason}".rstrip()
        if body:
            message = f"{message}\n{body}"
        super().__init__(message)


class AdminUnreachableError(AdminError):
    """Caddy admin endpoint could not be reached"""

    def __init__(self, method: str, url: str, cause: Exception):
        self.method = method
        self.url = url
        super().__init__(f"{method} {url} failed: {cause}")


class DomainConflictError(DevDomainError):
    """Domain is already routed to a different, live port"""

    def __init__(self, domain: str, active_port: int, desired_port: int):
        self.domain = domain
        self.active_port = active_port
        self.desired_port = desired_port
        super().__init__(
            f"Domain '{domain}' is already mapped to active port {active_port}. "
            "Refusing to overwrite. Stop that service or choose a different domain."
        )


class DomainNotFoundError(DevDomainError):
    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"No route found for domain {domain!r}.")


class PortNotFoundError(DevDomainError):
    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Port not found for domain {domain!r}.")


class ProcessLookupFailed(DevDomainError):
    """Listing the processes bound to a port failed"""


class ProcessSignalError(DevDomainError):
    """Sending the termination signal to a process failed"""

    def __init__(self, pid: int, port: int | None, cause: Exception):
        self.pid = pid
        self.port = port
        super().__init__(f"Failed to kill pid {pid}: {cause}")
