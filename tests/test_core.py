import json

import pytest

import tsuru_installer.core as core_module
from tsuru_installer.core import TsuruInstaller
from tsuru_installer.errors import ComponentInstallError, ConfigurationError, DaemonRejected, NotFound
from tsuru_installer.models import ComponentState, InstallConfig, Machine, RunStatus

COMPONENT_NAMES = ["mongo", "redis", "planb", "registry", "tsuru"]


@pytest.fixture
def quiet_console(monkeypatch):
    class DummyConsole:
        def print(self, *_args, **_kwargs):
            return None

    monkeypatch.setattr(core_module, "console", DummyConsole())


def build_installer(machine, client, **kwargs):
    config = kwargs.pop("install_config", None) or InstallConfig.from_settings("test")
    return TsuruInstaller(machine=machine, install_config=config, client=client, **kwargs)


def test_install_runs_every_component_in_order(quiet_console, client, daemon, machine):
    installer = build_installer(machine, client)

    statuses = installer.install()

    created = [call["params"]["name"] for call in daemon.calls if call["path"] == "/containers/create"]
    assert created == COMPONENT_NAMES
    assert [status.name for status in statuses] == COMPONENT_NAMES
    assert all(status.running for status in statuses)
    assert installer.run_status is RunStatus.COMPLETE
    assert all(installer.component_state(name) is ComponentState.INSTALLED for name in COMPONENT_NAMES)


def test_each_component_is_started_before_the_next_is_created(quiet_console, client, daemon, machine):
    build_installer(machine, client).install()

    sequence = [
        (call["method"], call["path"])
        for call in daemon.calls
        if call["path"] == "/containers/create" or call["path"].endswith("/start")
    ]
    expected = []
    for name in COMPONENT_NAMES:
        expected.append(("POST", "/containers/create"))
        expected.append(("POST", f"/containers/{name}-0123456789/start"))
    assert sequence == expected


def test_install_aborts_at_first_failure(quiet_console, client, daemon, machine):
    daemon.create_failures["planb"] = (500, "invalid reference format")
    installer = build_installer(machine, client)

    with pytest.raises(ComponentInstallError) as excinfo:
        installer.install()

    assert excinfo.value.component == "planb"
    assert isinstance(excinfo.value.cause, DaemonRejected)
    assert "planb" in str(excinfo.value)
    assert "invalid reference format" in str(excinfo.value)

    assert daemon.running("mongo")
    assert daemon.running("redis")
    assert "planb" not in daemon.containers
    assert "registry" not in daemon.containers
    assert "tsuru" not in daemon.containers

    assert installer.run_status is RunStatus.ABORTED
    assert installer.component_state("redis") is ComponentState.INSTALLED
    assert installer.component_state("planb") is ComponentState.FAILED
    assert installer.component_state("registry") is ComponentState.PENDING
    assert installer.component_state("tsuru") is ComponentState.PENDING


def test_install_does_not_roll_back_started_containers(quiet_console, client, daemon, machine):
    daemon.start_failures["tsuru"] = "OCI runtime create failed"
    installer = build_installer(machine, client)

    with pytest.raises(ComponentInstallError, match="OCI runtime create failed"):
        installer.install()

    assert all(daemon.running(name) for name in COMPONENT_NAMES[:-1])
    assert daemon.containers["tsuru"]["State"]["Running"] is False


def test_cancelled_install_marks_component_failed_and_aborts_run(quiet_console, client, daemon, machine, monkeypatch):
    original_start = daemon._start

    def cancel_on_planb(ref):
        if daemon.find(ref)["Name"] == "/planb":
            raise KeyboardInterrupt
        return original_start(ref)

    monkeypatch.setattr(daemon, "_start", cancel_on_planb)
    installer = build_installer(machine, client)

    with pytest.raises(KeyboardInterrupt):
        installer.install()

    assert daemon.running("mongo")
    assert daemon.running("redis")
    assert installer.component_state("planb") is ComponentState.FAILED
    assert installer.component_state("registry") is ComponentState.PENDING
    assert installer.component_state("tsuru") is ComponentState.PENDING
    assert installer.run_status is RunStatus.ABORTED


def test_unexpected_error_aborts_run(quiet_console, client, daemon, machine, monkeypatch):
    def broken_start(ref):
        raise ValueError("unexpected daemon payload")

    monkeypatch.setattr(daemon, "_start", broken_start)
    installer = build_installer(machine, client)

    with pytest.raises(ValueError):
        installer.install()

    assert installer.component_state("mongo") is ComponentState.FAILED
    assert installer.component_state("redis") is ComponentState.PENDING
    assert installer.run_status is RunStatus.ABORTED


def test_install_checks_tls_material_before_any_daemon_call(quiet_console, client, daemon, tmp_path):
    machine = Machine(address="https://127.0.0.1:2376", ip="127.0.0.1", ca_path=str(tmp_path))
    installer = build_installer(machine, client)

    with pytest.raises(ConfigurationError):
        installer.install()

    assert daemon.calls == []
    assert installer.run_status is RunStatus.NOT_STARTED


def test_install_writes_manifest(quiet_console, client, machine, tmp_path):
    manifest_file = tmp_path / "output" / "install-manifest.json"
    config = InstallConfig.from_settings("test", {"docker_hub_mirror": "myregistry.com"})
    installer = build_installer(machine, client, install_config=config, manifest_file=str(manifest_file))

    installer.install()

    data = json.loads(manifest_file.read_text(encoding="utf-8"))
    assert data["run_name"] == "test"
    assert data["status"] == "complete"
    assert [entry["name"] for entry in data["components"]] == COMPONENT_NAMES
    assert data["components"][2]["image"] == "myregistry.com/tsuru/planb:latest"


def test_status_reports_each_component_independently(quiet_console, client, daemon, machine):
    daemon.create_failures["registry"] = (500, "no space left on device")
    installer = build_installer(machine, client)
    with pytest.raises(ComponentInstallError):
        installer.install()

    reports = {report.name: report for report in installer.status()}

    assert reports["mongo"].ok and reports["mongo"].status.running
    assert reports["planb"].status.port_bindings == {"80/tcp": [("0.0.0.0", "80")]}
    assert isinstance(reports["registry"].error, NotFound)
    assert isinstance(reports["tsuru"].error, NotFound)


def test_uninstall_removes_in_reverse_order_and_skips_missing(quiet_console, client, daemon, machine):
    daemon.create_failures["registry"] = (500, "no space left on device")
    installer = build_installer(machine, client)
    with pytest.raises(ComponentInstallError):
        installer.install()

    reports = installer.uninstall()

    assert [report.name for report in reports] == list(reversed(COMPONENT_NAMES))
    assert all(report.ok for report in reports)
    assert daemon.containers == {}


def test_run_returns_zero_on_complete_install(quiet_console, client, machine):
    assert build_installer(machine, client).run() == 0


def test_run_returns_one_and_reports_component(quiet_console, client, daemon, machine, caplog):
    daemon.unreachable = True
    installer = build_installer(machine, client)

    with caplog.at_level("ERROR", logger="tsuru_installer"):
        exit_code = installer.run()

    assert exit_code == 1
    assert "Failed to install component 'mongo'" in caplog.text
