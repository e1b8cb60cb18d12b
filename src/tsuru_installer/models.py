"""Shared domain models for the tsuru installer."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tsuru_installer.constants import (
    CA_CERT_FILE,
    CLIENT_CERT_FILE,
    CLIENT_KEY_FILE,
    DEFAULT_API_PORT,
    DEFAULT_CERTS_ROOT,
    DEFAULT_MONGO_PORT,
    DEFAULT_PLANB_PORT,
    DEFAULT_REDIS_PORT,
    DEFAULT_REGISTRY_PORT,
    TLS_FILES,
)
from tsuru_installer.errors import ConfigurationError
from tsuru_installer.errors_catalog import actionable_error


@dataclass(frozen=True)
class Machine:
    """Remote Docker daemon endpoint and the TLS material used to reach it."""

    address: str
    ip: str
    ca_path: str

    @property
    def base_url(self) -> str:
        address = self.address.rstrip("/")
        if address.startswith("tcp://"):
            return "https://" + address[len("tcp://"):]
        return address

    @property
    def ca_cert_path(self) -> str:
        return os.path.join(self.ca_path, CA_CERT_FILE)

    @property
    def client_cert_path(self) -> str:
        return os.path.join(self.ca_path, CLIENT_CERT_FILE)

    @property
    def client_key_path(self) -> str:
        return os.path.join(self.ca_path, CLIENT_KEY_FILE)

    def validate_credentials(self):
        for file_name in TLS_FILES:
            path = os.path.join(self.ca_path, file_name)
            if not os.path.isfile(path):
                raise ConfigurationError(actionable_error("missing_tls_material", path=path))

    def tls_credentials(self) -> Tuple[str, Tuple[str, str]]:
        """Returns ``(verify, cert)`` arguments for an authenticated request."""
        self.validate_credentials()
        return self.ca_cert_path, (self.client_cert_path, self.client_key_path)


@dataclass(frozen=True)
class InstallConfig:
    """Resolved coordinates and options for one provisioning run."""

    name: str
    mongo_port: int = DEFAULT_MONGO_PORT
    redis_port: int = DEFAULT_REDIS_PORT
    planb_port: int = DEFAULT_PLANB_PORT
    registry_port: int = DEFAULT_REGISTRY_PORT
    api_port: int = DEFAULT_API_PORT
    certs_root: str = DEFAULT_CERTS_ROOT
    docker_hub_mirror: str = ""

    PORT_FIELDS = ("mongo_port", "redis_port", "planb_port", "registry_port", "api_port")

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ConfigurationError("Install run name must not be empty.")
        for field_name in self.PORT_FIELDS:
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 < value < 65536:
                raise ConfigurationError(
                    actionable_error("invalid_port", field=field_name, value=str(value))
                )

    @classmethod
    def from_settings(cls, name: str, settings: Optional[Mapping[str, Any]] = None) -> "InstallConfig":
        settings = settings or {}
        values: Dict[str, Any] = {}
        for field_name in cls.PORT_FIELDS:
            if settings.get(field_name) is not None:
                values[field_name] = cls._port_setting(field_name, settings[field_name])
        if settings.get("certs_root"):
            values["certs_root"] = str(settings["certs_root"])

        mirror = settings.get("docker_hub_mirror")
        if mirror is None:
            mirror = settings.get("docker-hub-mirror")
        values["docker_hub_mirror"] = str(mirror or "").strip().rstrip("/")
        return cls(name=name, **values)

    @staticmethod
    def _port_setting(field_name: str, raw: Any) -> int:
        error = ConfigurationError(actionable_error("invalid_port", field=field_name, value=str(raw)))
        if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
            raise error
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise error from exc


@dataclass(frozen=True)
class ContainerSpec:
    """Container definition computed by a component at install time."""

    name: str
    image: str
    cmd: Optional[List[str]] = None
    env: Optional[List[str]] = None
    exposed_ports: List[str] = field(default_factory=list)
    port_bindings: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)
    binds: List[str] = field(default_factory=list)
    restart_policy: str = "always"

    def create_body(self, image: str) -> Dict[str, Any]:
        """Builds the JSON payload for ``POST /containers/create``."""
        host_config: Dict[str, Any] = {"RestartPolicy": {"Name": self.restart_policy}}
        if self.port_bindings:
            host_config["PortBindings"] = {
                port: [{"HostIp": host_ip, "HostPort": host_port} for host_ip, host_port in bindings]
                for port, bindings in self.port_bindings.items()
            }
        if self.binds:
            host_config["Binds"] = list(self.binds)

        body: Dict[str, Any] = {"Image": image, "HostConfig": host_config}
        if self.cmd is not None:
            body["Cmd"] = list(self.cmd)
        if self.env is not None:
            body["Env"] = list(self.env)
        if self.exposed_ports:
            body["ExposedPorts"] = {port: {} for port in self.exposed_ports}
        return body


@dataclass(frozen=True)
class ComponentStatus:
    """Snapshot of a component container as reported by the daemon."""

    name: str
    image: str
    running: bool
    port_bindings: Dict[str, List[Tuple[str, str]]] = field(default_factory=dict)

    @classmethod
    def from_record(cls, name: str, record: Mapping[str, Any]) -> "ComponentStatus":
        config = record.get("Config") or {}
        state = record.get("State") or {}
        host_config = record.get("HostConfig") or {}
        bindings: Dict[str, List[Tuple[str, str]]] = {}
        for port, entries in (host_config.get("PortBindings") or {}).items():
            bindings[port] = [
                (entry.get("HostIp", ""), entry.get("HostPort", "")) for entry in entries or []
            ]
        return cls(
            name=name,
            image=config.get("Image") or record.get("Image") or "",
            running=bool(state.get("Running", False)),
            port_bindings=bindings,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "image": self.image,
            "running": self.running,
            "port_bindings": {
                port: [list(binding) for binding in bindings]
                for port, bindings in self.port_bindings.items()
            },
        }


class RunStatus(Enum):
    """Overall state of a provisioning run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETE = "complete"
    ABORTED = "aborted"


class ComponentState(Enum):
    """Install state of a single component within a run."""

    PENDING = "pending"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True)
class ComponentReport:
    """Outcome of a per-component query that does not abort its siblings."""

    name: str
    status: Optional[ComponentStatus] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
