import copy
from urllib.parse import urlparse

import pytest

from tsuru_installer.models import InstallConfig, Machine
from tsuru_installer.services.docker_client import ContainerClient


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self.payload = payload
        self.text = text

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeDockerDaemon:
    """In-memory Docker daemon standing in for the ``requests`` module."""

    class RequestException(Exception):
        pass

    def __init__(self):
        self.containers = {}
        self.calls = []
        self.create_failures = {}
        self.start_failures = {}
        self.pull_errors = {}
        self.unreachable = False

    def request(self, method, url, params=None, json=None, cert=None, verify=None, timeout=None):
        if self.unreachable:
            raise self.RequestException("[Errno 111] Connection refused")

        path = urlparse(url).path
        self.calls.append(
            {
                "method": method,
                "url": url,
                "path": path,
                "params": params,
                "json": json,
                "cert": cert,
                "verify": verify,
                "timeout": timeout,
            }
        )
        parts = path.strip("/").split("/")

        if method == "POST" and path == "/images/create":
            image = params["fromImage"]
            if image in self.pull_errors:
                return FakeResponse(200, text='{"status":"Pulling"}\n{"error":"%s"}\n' % self.pull_errors[image])
            return FakeResponse(200, text='{"status":"Pulling from %s"}\n' % image)

        if method == "POST" and path == "/containers/create":
            return self._create(params["name"], json)

        if method == "POST" and len(parts) == 3 and parts[2] == "start":
            return self._start(parts[1])

        if method == "GET" and len(parts) == 3 and parts[2] == "json":
            record = self.find(parts[1])
            if record is None:
                return self._missing(parts[1])
            return FakeResponse(200, copy.deepcopy(record))

        if method == "DELETE" and len(parts) == 2:
            record = self.find(parts[1])
            if record is None:
                return self._missing(parts[1])
            del self.containers[record["Name"].lstrip("/")]
            return FakeResponse(204)

        return FakeResponse(404, text="404 page not found")

    def find(self, ref):
        if ref in self.containers:
            return self.containers[ref]
        for record in self.containers.values():
            if record["Id"] == ref:
                return record
        return None

    def running(self, name):
        record = self.containers.get(name)
        return bool(record and record["State"]["Running"])

    def _create(self, name, body):
        if name in self.create_failures:
            status_code, message = self.create_failures[name]
            return FakeResponse(status_code, {"message": message})
        if name in self.containers:
            return FakeResponse(
                409,
                {"message": f'Conflict. The container name "/{name}" is already in use.'},
            )
        self.containers[name] = {
            "Id": f"{name}-0123456789",
            "Name": f"/{name}",
            "Image": "sha256:5f1b4d0e",
            "Config": {
                "Image": body["Image"],
                "Cmd": body.get("Cmd"),
                "Env": body.get("Env"),
                "ExposedPorts": body.get("ExposedPorts"),
            },
            "HostConfig": body.get("HostConfig", {}),
            "State": {"Running": False},
        }
        return FakeResponse(201, {"Id": self.containers[name]["Id"], "Warnings": []})

    def _start(self, ref):
        record = self.find(ref)
        if record is None:
            return self._missing(ref)
        name = record["Name"].lstrip("/")
        if name in self.start_failures:
            return FakeResponse(500, {"message": self.start_failures[name]})
        record["State"]["Running"] = True
        return FakeResponse(204)

    @staticmethod
    def _missing(ref):
        return FakeResponse(404, {"message": f"No such container: {ref}"})


@pytest.fixture
def daemon():
    return FakeDockerDaemon()


@pytest.fixture
def tls_dir(tmp_path):
    certs = tmp_path / "certs"
    certs.mkdir()
    for file_name in ("ca.pem", "cert.pem", "key.pem"):
        (certs / file_name).write_text("-----BEGIN CERTIFICATE-----\n", encoding="utf-8")
    return certs


@pytest.fixture
def machine(tls_dir):
    return Machine(address="https://127.0.0.1:2376", ip="127.0.0.1", ca_path=str(tls_dir))


@pytest.fixture
def client(daemon):
    return ContainerClient(logger=DummyLogger(), timeout=30.0, requests_module=daemon)


@pytest.fixture
def install_config():
    return InstallConfig.from_settings("test")
