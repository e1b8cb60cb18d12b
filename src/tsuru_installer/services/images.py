"""Image reference helpers shared by every component."""

from typing import Tuple


def resolve_image(reference: str, mirror: str = "") -> str:
    """Prefixes ``reference`` with the registry mirror host when one is set.

    The full repository path is preserved, so ``tsuru/api:latest`` becomes
    ``mirror.example.com/tsuru/api:latest``.
    """
    if not mirror:
        return reference
    return f"{mirror.rstrip('/')}/{reference}"


def split_image_reference(reference: str) -> Tuple[str, str]:
    """Splits ``repo/image:tag`` into ``("repo/image", "tag")``.

    A colon inside the registry host (``host:5000/image``) is not a tag
    separator; references without a tag default to ``latest``.
    """
    name, _, last_segment = reference.rpartition("/")
    if ":" in last_segment:
        last_segment, tag = last_segment.split(":", 1)
    else:
        tag = "latest"
    repository = f"{name}/{last_segment}" if name else last_segment
    return repository, tag
