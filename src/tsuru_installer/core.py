import logging
from typing import List, Optional, Sequence

from rich.console import Console

from .components import TsuruComponent, build_components
from .constants import DEFAULT_DOCKER_TIMEOUT
from .errors import ComponentInstallError, InstallerError
from .errors_catalog import actionable_error
from .models import ComponentReport, ComponentState, ComponentStatus, InstallConfig, Machine, RunStatus
from .services.docker_client import ContainerClient
from .services.manifest import ManifestService

console = Console()
logger = logging.getLogger("tsuru_installer")


class TsuruInstaller:
    """Installs the tsuru components on one machine, strictly in registry order."""

    def __init__(
        self,
        machine: Machine,
        install_config: InstallConfig,
        docker_timeout: Optional[float] = DEFAULT_DOCKER_TIMEOUT,
        manifest_file: Optional[str] = None,
        client: Optional[ContainerClient] = None,
        components: Optional[Sequence[TsuruComponent]] = None,
    ):
        self.machine = machine
        self.install_config = install_config
        self.client = client or ContainerClient(logger=logger, timeout=docker_timeout)
        if components is None:
            components = build_components(self.client)
        self.components: List[TsuruComponent] = list(components)
        self.manifest_service = ManifestService(logger=logger, manifest_file=manifest_file)

    @property
    def run_status(self) -> RunStatus:
        return self.manifest_service.status

    def component_state(self, name: str) -> ComponentState:
        return self.manifest_service.component_state(name)

    def install(self) -> List[ComponentStatus]:
        """Installs every component and returns their running status.

        Stops at the first failure and raises ``ComponentInstallError``; the
        components installed before it are left running.
        """
        self.machine.validate_credentials()
        self.manifest_service.start_run(
            run_name=self.install_config.name,
            machine={"address": self.machine.address, "ip": self.machine.ip},
            components=[component.name for component in self.components],
        )

        statuses = []
        try:
            for component in self.components:
                statuses.append(self._install_component(component))
        except ComponentInstallError as exc:
            self.manifest_service.finalize(RunStatus.ABORTED, error=str(exc))
            raise
        except KeyboardInterrupt:
            self.manifest_service.finalize(RunStatus.ABORTED, error="Operation cancelled by user.")
            raise
        except BaseException as exc:
            self.manifest_service.finalize(RunStatus.ABORTED, error=str(exc) or type(exc).__name__)
            raise

        self.manifest_service.finalize(RunStatus.COMPLETE)
        return statuses

    def _install_component(self, component: TsuruComponent) -> ComponentStatus:
        console.print(f"[blue]Installing {component.name}...[/blue]")
        self.manifest_service.component_started(component.name)

        try:
            component.install(self.machine, self.install_config)
            status = component.status(self.machine)
            if not status.running:
                raise InstallerError(f"Container {component.name} is not running after start.")
        except InstallerError as exc:
            logger.debug("Install of %s failed: %s", component.name, exc)
            self.manifest_service.component_finished(
                component.name,
                ComponentState.FAILED,
                error=str(exc),
            )
            raise ComponentInstallError(component.name, exc) from exc
        except BaseException as exc:
            # Cancellation or an unexpected error still ends the component as failed.
            self.manifest_service.component_finished(
                component.name,
                ComponentState.FAILED,
                error=str(exc) or type(exc).__name__,
            )
            raise

        self.manifest_service.component_finished(
            component.name,
            ComponentState.INSTALLED,
            image=status.image,
        )
        console.print(f"[green]{component.name} is running ({status.image}).[/green]")
        return status

    def status(self) -> List[ComponentReport]:
        reports = []
        for component in self.components:
            try:
                reports.append(ComponentReport(component.name, status=component.status(self.machine)))
            except InstallerError as exc:
                logger.debug("Status of %s failed: %s", component.name, exc)
                reports.append(ComponentReport(component.name, error=exc))
        return reports

    def uninstall(self) -> List[ComponentReport]:
        """Removes components in reverse install order, reporting failures per component."""
        reports = []
        for component in reversed(self.components):
            try:
                component.remove(self.machine)
            except InstallerError as exc:
                logger.warning("Could not remove %s: %s", component.name, exc)
                reports.append(ComponentReport(component.name, error=exc))
            else:
                logger.info("Removed %s", component.name)
                reports.append(ComponentReport(component.name))
        return reports

    def run(self) -> int:
        try:
            logger.info(
                "Starting tsuru install '%s' on %s...",
                self.install_config.name,
                self.machine.address,
            )
            if self.install_config.docker_hub_mirror:
                logger.info("Using registry mirror %s", self.install_config.docker_hub_mirror)

            self.install()
            console.print(
                f"[bold green]tsuru API available at http://{self.machine.ip}:"
                f"{self.install_config.api_port}[/bold green]"
            )
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except ComponentInstallError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            console.print(actionable_error("component_install_failed", component=exc.component))
            logger.error(str(exc))
            return 1
        except InstallerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
