"""Actionable error catalog for the tsuru installer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_tls_material": {
        "what": "TLS credential file not found: {path}",
        "next": "Point `--ca-path` to a directory holding `ca.pem`, `cert.pem` and `key.pem`.",
    },
    "daemon_unreachable": {
        "what": "Could not reach the Docker daemon at {address}: {error}",
        "next": "Check that the machine is up and that the daemon accepts TLS connections.",
    },
    "invalid_port": {
        "what": "Invalid port for {field}: {value}",
        "next": "Use an integer between 1 and 65535.",
    },
    "component_install_failed": {
        "what": "Component {component} failed to install.",
        "next": "Inspect the container with `status`, then clean up with `uninstall` before retrying.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
