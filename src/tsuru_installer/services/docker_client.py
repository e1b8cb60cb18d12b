"""Docker daemon HTTP client authenticated with the machine's TLS material."""

import json
from typing import Any, Dict, Optional

import requests

from tsuru_installer.constants import DEFAULT_DOCKER_TIMEOUT
from tsuru_installer.errors import DaemonRejected, NotFound, TransportError
from tsuru_installer.errors_catalog import actionable_error
from tsuru_installer.models import ContainerSpec, Machine
from tsuru_installer.services.images import split_image_reference


class ContainerClient:
    """Creates, starts, inspects and removes containers on a remote daemon.

    Every call reads the credentials from the ``Machine`` it is given, so a
    single client can talk to several machines. Transport failures are not
    retried here; ``timeout`` bounds each individual request.
    """

    def __init__(self, logger, timeout: Optional[float] = DEFAULT_DOCKER_TIMEOUT, requests_module=requests):
        self.logger = logger
        self.timeout = timeout
        self.requests = requests_module

    def pull_image(self, machine: Machine, image: str):
        repository, tag = split_image_reference(image)
        response = self._request(
            machine,
            "POST",
            "/images/create",
            params={"fromImage": repository, "tag": tag},
        )
        # Pull failures arrive as a 200 with an error object in the progress stream.
        for line in (response.text or "").splitlines():
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except ValueError:
                continue
            if isinstance(event, dict) and event.get("error"):
                raise DaemonRejected(str(event["error"]), status_code=response.status_code)
        self.logger.debug("Pulled image %s", image)

    def create(self, machine: Machine, spec: ContainerSpec, image: str) -> str:
        response = self._request(
            machine,
            "POST",
            "/containers/create",
            params={"name": spec.name},
            body=spec.create_body(image),
        )
        container_id = self._json(response).get("Id")
        if not container_id:
            raise DaemonRejected(
                f"Daemon did not return an id for container {spec.name}",
                status_code=response.status_code,
            )
        self.logger.debug("Created container %s (%s)", spec.name, container_id)
        return container_id

    def start(self, machine: Machine, container_id: str):
        self._request(machine, "POST", f"/containers/{container_id}/start")
        self.logger.debug("Started container %s", container_id)

    def inspect(self, machine: Machine, name: str) -> Dict[str, Any]:
        response = self._request(machine, "GET", f"/containers/{name}/json", not_found=True)
        return self._json(response)

    def remove(self, machine: Machine, name: str):
        self._request(
            machine,
            "DELETE",
            f"/containers/{name}",
            params={"force": "true", "v": "true"},
            not_found=True,
        )
        self.logger.debug("Removed container %s", name)

    def _request(
        self,
        machine: Machine,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
        not_found: bool = False,
    ):
        verify, cert = machine.tls_credentials()
        url = f"{machine.base_url}{path}"
        self.logger.debug("Docker request: %s %s", method, url)

        try:
            response = self.requests.request(
                method,
                url,
                params=params,
                json=body,
                cert=cert,
                verify=verify,
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise TransportError(
                actionable_error("daemon_unreachable", address=machine.address, error=str(exc))
            ) from exc

        if response.status_code < 400:
            return response

        message = self._error_message(response)
        if not_found and response.status_code == 404:
            raise NotFound(message)
        raise DaemonRejected(message, status_code=response.status_code)

    @staticmethod
    def _error_message(response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        text = (response.text or "").strip()
        return text or f"Docker daemon returned HTTP {response.status_code}"

    @staticmethod
    def _json(response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise DaemonRejected(
                f"Invalid JSON from Docker daemon: {exc}", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise DaemonRejected("Unexpected response from Docker daemon.", status_code=response.status_code)
        return payload
