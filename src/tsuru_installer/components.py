"""Installable tsuru platform components."""

import logging
from typing import List, Tuple, Type

from tsuru_installer.constants import HOST_CERTS_DIR, REGISTRY_DATA_DIR, WILDCARD_DNS_SUFFIX
from tsuru_installer.errors import NotFound
from tsuru_installer.models import ComponentStatus, ContainerSpec, InstallConfig, Machine
from tsuru_installer.services.docker_client import ContainerClient
from tsuru_installer.services.images import resolve_image

logger = logging.getLogger("tsuru_installer")


class TsuruComponent:
    """A platform service installed as a single named container.

    Subclasses only describe their container through ``container_spec``;
    the lifecycle against the daemon is shared.
    """

    name = ""

    def __init__(self, client: ContainerClient):
        self.client = client

    def container_spec(self, machine: Machine, config: InstallConfig) -> ContainerSpec:
        raise NotImplementedError

    def install(self, machine: Machine, config: InstallConfig) -> ContainerSpec:
        spec = self.container_spec(machine, config)
        image = resolve_image(spec.image, config.docker_hub_mirror)
        logger.info("Installing %s from %s", self.name, image)

        self.client.pull_image(machine, image)
        container_id = self.client.create(machine, spec, image)
        self.client.start(machine, container_id)
        return spec

    def status(self, machine: Machine) -> ComponentStatus:
        record = self.client.inspect(machine, self.name)
        return ComponentStatus.from_record(self.name, record)

    def remove(self, machine: Machine):
        try:
            self.client.remove(machine, self.name)
        except NotFound:
            logger.debug("Container %s is already absent.", self.name)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class MongoDB(TsuruComponent):
    name = "mongo"

    def container_spec(self, machine, config):
        port = "27017/tcp"
        return ContainerSpec(
            name=self.name,
            image="mongo:latest",
            exposed_ports=[port],
            port_bindings={port: [("0.0.0.0", str(config.mongo_port))]},
        )


class Redis(TsuruComponent):
    name = "redis"

    def container_spec(self, machine, config):
        port = "6379/tcp"
        return ContainerSpec(
            name=self.name,
            image="redis:latest",
            exposed_ports=[port],
            port_bindings={port: [("0.0.0.0", str(config.redis_port))]},
        )


class PlanB(TsuruComponent):
    """Router reading its backends from the redis instance on the host."""

    name = "planb"

    def container_spec(self, machine, config):
        return ContainerSpec(
            name=self.name,
            image="tsuru/planb:latest",
            cmd=[
                "--listen",
                ":80",
                "--read-redis-host",
                machine.ip,
                "--write-redis-host",
                machine.ip,
            ],
            exposed_ports=["80/tcp"],
            port_bindings={"80/tcp": [("0.0.0.0", str(config.planb_port))]},
        )


class Registry(TsuruComponent):
    name = "registry"

    def container_spec(self, machine, config):
        certs_dir = f"{config.certs_root}/{machine.ip}:{config.registry_port}"
        return ContainerSpec(
            name=self.name,
            image="registry:2",
            env=[
                f"REGISTRY_STORAGE_FILESYSTEM_ROOTDIRECTORY={REGISTRY_DATA_DIR}",
                f"REGISTRY_HTTP_TLS_KEY={certs_dir}/registry-key.pem",
                f"REGISTRY_HTTP_TLS_CERTIFICATE={certs_dir}/registry-cert.pem",
            ],
            exposed_ports=["5000/tcp"],
            port_bindings={"5000/tcp": [("0.0.0.0", str(config.registry_port))]},
            binds=[
                f"{HOST_CERTS_DIR}:{config.certs_root}:ro",
                f"{REGISTRY_DATA_DIR}:{REGISTRY_DATA_DIR}",
            ],
        )


class TsuruAPI(TsuruComponent):
    """The platform API. Installed last since it points at every other service.

    The API listens on ``TSURU_PORT`` inside the container, so the same port
    is exposed and published on the host.
    """

    name = "tsuru"

    def container_spec(self, machine, config):
        return ContainerSpec(
            name=self.name,
            image="tsuru/api:latest",
            env=[
                f"MONGODB_ADDR={machine.ip}",
                f"MONGODB_PORT={config.mongo_port}",
                f"REDIS_ADDR={machine.ip}",
                f"REDIS_PORT={config.redis_port}",
                f"HIPACHE_DOMAIN={machine.ip}.{WILDCARD_DNS_SUFFIX}",
                f"REGISTRY_ADDR={machine.ip}",
                f"REGISTRY_PORT={config.registry_port}",
                f"TSURU_ADDR=http://{machine.ip}",
                f"TSURU_PORT={config.api_port}",
            ],
            exposed_ports=[f"{config.api_port}/tcp"],
            port_bindings={f"{config.api_port}/tcp": [("0.0.0.0", str(config.api_port))]},
        )


TSURU_COMPONENTS: Tuple[Type[TsuruComponent], ...] = (MongoDB, Redis, PlanB, Registry, TsuruAPI)


def build_components(client: ContainerClient) -> List[TsuruComponent]:
    """Instantiates the registry in install order, all sharing one client."""
    return [component_cls(client) for component_cls in TSURU_COMPONENTS]
