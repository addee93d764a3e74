"""Configuration: devdomain.yml project settings and domain computation"""

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Literal

import yaml

from .admin import DEFAULT_ADMIN_URL, DEFAULT_SERVER_ID
from .bootstrap import DEFAULT_LISTEN
from .probe import DEFAULT_PROBE_TIMEOUT

logger = logging.getLogger("devdomain.config")

CONFIG_FILENAMES = ("devdomain.yml", "devdomain.yaml")
DOMAIN_ENV = "DEVDOMAIN_VALUE"

NameSource = Literal["folder", "project"]


@dataclass
class DomainOptions:
    """
    Settings for wiring one dev server into Caddy.

    Attributes:
        admin_url: Caddy admin API base URL
        server_id: apps.http server id to use/create
        listen: Addresses the managed server listens on
        name_source: Subdomain source when no explicit domain is given
            ("folder" = working directory name, "project" = pyproject.toml name)
        tld: Top-level domain appended to the derived name
        domain: Fully explicit domain; overrides name_source and tld
        fail_on_active_domain: Report an error (instead of a warning) when the
            domain already points to a different live port
        insert_first: Insert new routes at index 0 instead of appending
        upstream_host: Host used in the upstream dial address
        probe_timeout: Liveness probe timeout in seconds
    """

    admin_url: str = DEFAULT_ADMIN_URL
    server_id: str = DEFAULT_SERVER_ID
    listen: list[str] = field(default_factory=lambda: list(DEFAULT_LISTEN))
    name_source: NameSource = "folder"
    tld: str = "local"
    domain: str | None = None
    fail_on_active_domain: bool = True
    insert_first: bool = True
    upstream_host: str = "localhost"
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT

    @classmethod
    def from_dict(cls, data: dict) -> "DomainOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown devdomain settings: %s", ", ".join(unknown))
        values = {k: v for k, v in data.items() if k in known and v is not None}

        listen = values.get("listen")
        if isinstance(listen, str):
            values["listen"] = [listen]
        elif listen is not None and not (isinstance(listen, list) and all(isinstance(a, str) for a in listen)):
            raise ValueError("listen must be a list of addresses")

        if values.get("name_source", "folder") not in ("folder", "project"):
            raise ValueError("name_source must be 'folder' or 'project'")
        return cls(**values)


class ProjectConfig:
    """
    Per-project devdomain.yml, searched in the start directory and its parents.

    Schema mirrors DomainOptions, e.g.:
        domain: myapp.local
        listen: [":443", ":80"]
        fail_on_active_domain: false
    """

    def __init__(self, start_path: Path | None = None):
        self.start_path = Path(start_path or os.getcwd()).resolve()
        self.config_file: Path | None = None
        self.config: dict = {}
        self._find_and_load()

    def _find_and_load(self):
        current = self.start_path
        # Search up to 10 levels
        for _ in range(10):
            for filename in CONFIG_FILENAMES:
                candidate = current / filename
                if candidate.is_file():
                    self.config_file = candidate
                    self._load_yaml()
                    return
            parent = current.parent
            if parent == current:
                break
            current = parent

    def _load_yaml(self):
        with open(self.config_file, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.config_file}: expected a mapping at the top level")
        self.config = data

    @property
    def project_root(self) -> Path:
        return self.config_file.parent if self.config_file else self.start_path

    def exists(self) -> bool:
        return self.config_file is not None

    def options(self, **overrides) -> DomainOptions:
        """Options from the file, with non-None keyword overrides applied on top"""
        data = {**self.config, **{k: v for k, v in overrides.items() if v is not None}}
        return DomainOptions.from_dict(data)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9-]+", "-", value.lower()).strip("-")


def slug_from_folder(path: Path) -> str:
    return slugify(path.resolve().name)


def slug_from_project(path: Path) -> str:
    """Slug of the ``[project].name`` in pyproject.toml, falling back to the folder name"""
    pyproject = path / "pyproject.toml"
    try:
        with open(pyproject, "rb") as f:
            name = tomllib.load(f).get("project", {}).get("name")
    except (OSError, tomllib.TOMLDecodeError):
        name = None
    if isinstance(name, str) and name.strip():
        return slugify(name)
    return slug_from_folder(path)


def compute_domain(options: DomainOptions, cwd: Path | None = None) -> str:
    """Domain for this project: env override, explicit domain, then <name>.<tld>"""
    env = os.environ.get(DOMAIN_ENV, "").strip().lower()
    if env:
        return env
    if options.domain:
        return options.domain
    root = Path(cwd or os.getcwd())
    base = slug_from_project(root) if options.name_source == "project" else slug_from_folder(root)
    return f"{base}.{options.tld}"
