"""Run manifest: everything needed to trace a result back to its inputs."""

from __future__ import annotations

import json
import platform
import subprocess
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Dict, Mapping, Sequence

LIBRARIES = ("numpy", "pandas", "scikit-learn", "PyYAML", "matplotlib")


def _git_revision(cwd: Path) -> str | None:
    try:
        out = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.stdout.strip() or None


def library_versions() -> Dict[str, str | None]:
    versions: Dict[str, str | None] = {}
    for name in LIBRARIES:
        try:
            versions[name] = metadata.version(name)
        except metadata.PackageNotFoundError:
            versions[name] = None
    return versions


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    network_summary: Sequence[Mapping[str, object]],
    results: Mapping[str, object] | None = None,
) -> str:
    """Write ``manifest.json`` and return its path as a string.

    The manifest records the resolved config, where the data came from, the
    layer stack, the headline results, and the interpreter plus library
    versions.
    """

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "created": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "revision": _git_revision(path.parent),
        "config": dict(config),
        "dataset": dict(dataset_provenance),
        "network": [dict(layer) for layer in network_summary],
        "results": dict(results or {}),
        "environment": {"python": platform.python_version(), **library_versions()},
    }
    path.write_text(json.dumps(manifest, indent=2, default=str))
    return str(path)


__all__ = ["library_versions", "write_manifest"]
