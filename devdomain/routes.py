"""
Typed views over Caddy route and TLS policy documents.

Caddy's JSON is loosely typed, so documents are validated when read: anything
malformed degrades to "no hosts" or "no port" instead of raising.
"""

import re
from dataclasses import dataclass, field
from typing import Any

INTERNAL_ISSUER = "internal"
REVERSE_PROXY = "reverse_proxy"

_DIAL_PORT = re.compile(r":(\d+)$")
_DIAL_HOST = re.compile(r"^(?:tcp[46]?/)?(?:\[(?P<v6>[^\]]*)\]|(?P<host>[^:/]*)):\d+$")
HOST_KEYS = {"host", "hosts"}


def parse_dial_port(dial: Any) -> int | None:
    """Extract the trailing ``:port`` of an upstream dial address"""
    if not isinstance(dial, str):
        return None
    match = _DIAL_PORT.search(dial.strip())
    if not match:
        return None
    port = int(match.group(1))
    return port if 0 < port <= 65535 else None


def parse_dial_host(dial: Any) -> str | None:
    """
    Host part of a ``host:port`` dial address.

    An empty host (``:4001``) and ``localhost`` both mean the loopback
    address; IPv6 brackets and a tcp network prefix are stripped. Other
    networks and port-less dials yield None.
    """
    if not isinstance(dial, str):
        return None
    match = _DIAL_HOST.match(dial.strip())
    if not match:
        return None
    host = match.group("v6") if match.group("v6") is not None else match.group("host")
    if not host or host == "localhost":
        return "127.0.0.1"
    return host


def _host_list(matcher: Any) -> tuple[str, ...]:
    if not isinstance(matcher, dict):
        return ()
    hosts = matcher.get("host", matcher.get("hosts"))
    if not isinstance(hosts, list):
        return ()
    return tuple(h for h in hosts if isinstance(h, str) and h)


def _is_host_only(matchers: Any) -> bool:
    """Every matcher set matches on host and nothing else (path, method, ...)"""
    if not isinstance(matchers, list) or not matchers:
        return False
    return all(isinstance(m, dict) and set(m) <= HOST_KEYS and _host_list(m) for m in matchers)


def _first_dial(handlers: Any) -> str | None:
    if not isinstance(handlers, list):
        return None
    for handler in handlers:
        if not isinstance(handler, dict) or handler.get("handler") != REVERSE_PROXY:
            continue
        upstreams = handler.get("upstreams")
        if isinstance(upstreams, list) and upstreams and isinstance(upstreams[0], dict):
            dial = upstreams[0].get("dial")
            if isinstance(dial, str):
                return dial
    return None


@dataclass(frozen=True)
class Route:
    """One entry of a server's ``routes`` list"""

    index: int
    matchers: tuple[tuple[str, ...], ...] = ()
    dial: str | None = None
    terminal: bool = False
    host_only: bool = False
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, index: int, data: Any) -> "Route":
        if not isinstance(data, dict):
            return cls(index=index)
        match = data.get("match")
        matchers = tuple(_host_list(m) for m in match) if isinstance(match, list) else ()
        return cls(
            index=index,
            matchers=matchers,
            host_only=_is_host_only(match),
            dial=_first_dial(data.get("handle")),
            terminal=data.get("terminal") is True,
            raw=data,
        )

    @property
    def hosts(self) -> tuple[str, ...]:
        """Every host string across all matchers, in document order"""
        return tuple(host for hosts in self.matchers for host in hosts)

    @property
    def port(self) -> int | None:
        return parse_dial_port(self.dial)

    @property
    def upstream_host(self) -> str | None:
        return parse_dial_host(self.dial)

    def matches(self, domain: str) -> bool:
        return any(domain in hosts for hosts in self.matchers)

    def only_matches(self, domain: str) -> bool:
        """True when every matcher set is host-only and ``domain`` is the sole host"""
        return self.host_only and set(self.hosts) == {domain}


def build_route(domain: str, port: int, upstream_host: str = "localhost") -> dict:
    """Wire document for a ``domain -> upstream_host:port`` route"""
    return {
        "match": [{"host": [domain]}],
        "handle": [{"handler": REVERSE_PROXY, "upstreams": [{"dial": f"{upstream_host}:{port}"}]}],
        "terminal": True,
    }


def parse_routes(data: Any) -> list[Route]:
    if not isinstance(data, list):
        return []
    return [Route.from_dict(i, item) for i, item in enumerate(data)]


def find_route(routes: list[Route], domain: str) -> Route | None:
    """First route matching ``domain``; Caddy evaluates routes in order"""
    for route in routes:
        if route.matches(domain):
            return route
    return None


@dataclass(frozen=True)
class TlsPolicy:
    index: int
    subjects: tuple[str, ...] = ()
    issuer_modules: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, index: int, data: Any) -> "TlsPolicy":
        if not isinstance(data, dict):
            return cls(index=index)
        subjects = data.get("subjects")
        issuers = data.get("issuers")
        return cls(
            index=index,
            subjects=tuple(s for s in subjects if isinstance(s, str)) if isinstance(subjects, list) else (),
            issuer_modules=tuple(
                i["module"] for i in issuers if isinstance(i, dict) and isinstance(i.get("module"), str)
            )
            if isinstance(issuers, list)
            else (),
        )

    def covers_internally(self, domain: str) -> bool:
        return domain in self.subjects and INTERNAL_ISSUER in self.issuer_modules


def build_tls_policy(domain: str) -> dict:
    return {"subjects": [domain], "issuers": [{"module": INTERNAL_ISSUER}]}


def parse_policies(data: Any) -> list[TlsPolicy]:
    if not isinstance(data, list):
        return []
    return [TlsPolicy.from_dict(i, item) for i, item in enumerate(data)]
