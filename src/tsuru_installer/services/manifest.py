"""Install run manifest service."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from tsuru_installer.models import ComponentState, RunStatus


class ManifestService:
    """Tracks per-component install state and optionally writes it as JSON."""

    def __init__(self, logger, manifest_file: Optional[str] = None):
        self.manifest_file = manifest_file
        self.logger = logger
        self.manifest: Dict[str, Any] = {
            "run_name": None,
            "status": RunStatus.NOT_STARTED.value,
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "machine": {},
            "components": [],
            "error": None,
        }

    @property
    def status(self) -> RunStatus:
        return RunStatus(self.manifest["status"])

    def start_run(self, run_name: str, machine: Dict[str, Any], components: Iterable[str]):
        self.manifest["run_name"] = run_name
        self.manifest["status"] = RunStatus.RUNNING.value
        self.manifest["started_at"] = self._now()
        self.manifest["machine"] = machine
        self.manifest["components"] = [
            {
                "name": name,
                "status": ComponentState.PENDING.value,
                "image": None,
                "started_at": None,
                "finished_at": None,
                "duration_seconds": None,
                "error": None,
            }
            for name in components
        ]
        self.write()

    def component_started(self, name: str):
        entry = self._component(name)
        entry["status"] = ComponentState.INSTALLING.value
        entry["started_at"] = self._now()
        self.write()

    def component_finished(
        self,
        name: str,
        state: ComponentState,
        image: Optional[str] = None,
        error: Optional[str] = None,
    ):
        entry = self._component(name)
        entry["status"] = state.value
        if image:
            entry["image"] = image
        entry["finished_at"] = self._now()
        entry["error"] = error
        if entry["started_at"]:
            started_at = datetime.fromisoformat(entry["started_at"])
            finished_at = datetime.fromisoformat(entry["finished_at"])
            entry["duration_seconds"] = (finished_at - started_at).total_seconds()
        self.write()

    def component_state(self, name: str) -> ComponentState:
        return ComponentState(self._component(name)["status"])

    def finalize(self, status: RunStatus, error: Optional[str] = None):
        self.manifest["status"] = status.value
        self.manifest["finished_at"] = self._now()
        if self.manifest.get("started_at"):
            started_at = datetime.fromisoformat(self.manifest["started_at"])
            finished_at = datetime.fromisoformat(self.manifest["finished_at"])
            self.manifest["duration_seconds"] = (finished_at - started_at).total_seconds()
        self.manifest["error"] = error
        self.write()

    def write(self):
        if not self.manifest_file:
            return

        os.makedirs(os.path.dirname(self.manifest_file) or ".", exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            prefix="install-manifest-",
            suffix=".json",
            dir=os.path.dirname(self.manifest_file) or ".",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.manifest, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.manifest_file)
        except OSError as exc:
            self.logger.warning("Could not write manifest file '%s': %s", self.manifest_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    def _component(self, name: str) -> Dict[str, Any]:
        for entry in self.manifest["components"]:
            if entry["name"] == name:
                return entry
        raise KeyError(f"Unknown component in manifest: {name}")

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
