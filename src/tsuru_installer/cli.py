import json
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .constants import DEFAULT_DOCKER_TIMEOUT
from .core import TsuruInstaller
from .errors import InstallerError, NotFound
from .models import InstallConfig, Machine
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".tsuru-installer.yml"
DEFAULT_RUN_NAME = "tsuru"

console = Console()


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


_MACHINE_OPTIONS = [
    click.option(
        "--config",
        required=False,
        type=click.Path(),
        help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
    ),
    click.option("--address", required=False, help="Docker daemon URL, e.g. https://10.0.0.5:2376"),
    click.option("--ip", required=False, help="IP address of the machine running the daemon"),
    click.option(
        "--ca-path",
        required=False,
        type=click.Path(),
        help="Directory holding ca.pem, cert.pem and key.pem for the daemon.",
    ),
    click.option(
        "--docker-timeout",
        required=False,
        type=float,
        default=None,
        help=f"Timeout in seconds for each Docker API request (default: {DEFAULT_DOCKER_TIMEOUT:g}).",
    ),
    click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging"),
    click.option("--log-file", type=click.Path(), help="Path to log file"),
]


def machine_options(func):
    """Options shared by every command that talks to the Docker daemon."""
    for option in reversed(_MACHINE_OPTIONS):
        func = option(func)
    return func


def _load_config(config):
    config_loader = ConfigLoader()
    resolved_config = config
    if resolved_config is None:
        default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
        if os.path.exists(default_config_path):
            resolved_config = default_config_path
    try:
        return config_loader.load(resolved_config)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(verbose, log_file):
    logger = logging.getLogger("tsuru_installer")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def _build_installer(config_values, options, name=None, docker_hub_mirror=None, manifest_file=None):
    address = _resolve_option(options["address"], config_values, "address")
    ip = _resolve_option(options["ip"], config_values, "ip")
    ca_path = _resolve_option(options["ca_path"], config_values, "ca_path")
    docker_timeout = float(
        _resolve_option(
            options["docker_timeout"],
            config_values,
            "docker_timeout",
            default=DEFAULT_DOCKER_TIMEOUT,
        )
    )
    verbose = bool(_resolve_option(options["verbose"], config_values, "verbose", default=False))
    log_file = _resolve_option(options["log_file"], config_values, "log_file")

    if not address:
        raise click.ClickException("Missing required option '--address' (or provide it in config).")
    if not ip:
        raise click.ClickException("Missing required option '--ip' (or provide it in config).")
    if not ca_path:
        raise click.ClickException("Missing required option '--ca-path' (or provide it in config).")

    _configure_logging(verbose, log_file)

    settings = dict(config_values)
    if docker_hub_mirror is not None:
        settings["docker_hub_mirror"] = docker_hub_mirror
    run_name = _resolve_option(name, config_values, "name", default=DEFAULT_RUN_NAME)

    try:
        install_config = InstallConfig.from_settings(str(run_name), settings)
        return TsuruInstaller(
            machine=Machine(address=address, ip=ip, ca_path=ca_path),
            install_config=install_config,
            docker_timeout=docker_timeout,
            manifest_file=_resolve_option(manifest_file, config_values, "manifest_file"),
        )
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="tsuru-installer")
def main():
    """Bootstrap a tsuru platform on a remote Docker host."""


@main.command()
@machine_options
@click.option("--name", required=False, help=f"Name of the install run (default: {DEFAULT_RUN_NAME})")
@click.option(
    "--docker-hub-mirror",
    required=False,
    help="Registry host used instead of Docker Hub, e.g. myregistry.com",
)
@click.option(
    "--manifest-file",
    required=False,
    type=click.Path(),
    help="Write a JSON manifest of the install run to this path.",
)
def install(name, docker_hub_mirror, manifest_file, **options):
    """Install mongo, redis, planb, registry and the tsuru API, in that order."""
    config_values = _load_config(options.pop("config"))
    installer = _build_installer(
        config_values,
        options,
        name=name,
        docker_hub_mirror=docker_hub_mirror,
        manifest_file=manifest_file,
    )
    raise SystemExit(installer.run())


@main.command()
@machine_options
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the component states as JSON.")
def status(as_json, **options):
    """Report the container state of every component."""
    config_values = _load_config(options.pop("config"))
    installer = _build_installer(config_values, options)
    reports = installer.status()
    exit_code = 0 if all(report.ok for report in reports) else 1

    if as_json:
        payload = [
            report.status.as_dict() if report.ok else {"name": report.name, "error": str(report.error)}
            for report in reports
        ]
        click.echo(json.dumps(payload, indent=2))
        raise SystemExit(exit_code)

    for report in reports:
        if report.ok:
            component = report.status
            state = "[green]running[/green]" if component.running else "[yellow]stopped[/yellow]"
            ports = ", ".join(
                f"{host_ip}:{host_port}->{port}"
                for port, bindings in sorted(component.port_bindings.items())
                for host_ip, host_port in bindings
            )
            console.print(f"{report.name}: {state} {component.image} {ports}".rstrip())
        elif isinstance(report.error, NotFound):
            console.print(f"{report.name}: [red]not installed[/red]")
        else:
            console.print(f"{report.name}: [bold red]error[/bold red] {report.error}")
    raise SystemExit(exit_code)


@main.command()
@machine_options
def uninstall(**options):
    """Remove every component container. Missing containers are skipped."""
    config_values = _load_config(options.pop("config"))
    installer = _build_installer(config_values, options)

    exit_code = 0
    for report in installer.uninstall():
        if report.ok:
            console.print(f"[green]Removed {report.name}.[/green]")
        else:
            exit_code = 1
            console.print(f"[bold red]Could not remove {report.name}:[/bold red] {report.error}")
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
