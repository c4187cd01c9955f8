"""Deployment details with required-label validation."""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from k8srules.cluster import KubeError

_REQUIRED_LABELS = ("app", "version")
_ZERO_TIME = "0001-01-01 00:00:00 +0000 UTC"


def _format_map(values: Mapping[str, Any]) -> str:
    return "map[" + " ".join(f"{key}:{values[key]}" for key in sorted(values)) + "]"


def _format_time(stamp: str | None) -> str:
    if not stamp:
        return _ZERO_TIME
    try:
        moment = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    except ValueError:
        return stamp
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S +0000 UTC")


def deployment_info(client, namespace: str, deployment_name: str) -> str:
    """Describe a deployment, marking required labels and listing missing ones."""
    try:
        deployment = client.get_deployment(namespace, deployment_name)
    except KubeError as err:
        return f"Error retrieving deployment: {err}"

    metadata = deployment.get("metadata") or {}
    status = deployment.get("status") or {}
    selector = ((deployment.get("spec") or {}).get("selector") or {}).get("matchLabels") or {}

    lines = [
        f"Name: {metadata.get('name', '')}",
        f"Namespace: {metadata.get('namespace', '')}",
        f"Replicas: {status.get('readyReplicas', 0)}/{status.get('replicas', 0)}",
        f"Creation Time: {_format_time(metadata.get('creationTimestamp'))}",
        f"Selector: {_format_map(selector)}",
    ]

    labels = metadata.get("labels") or {}
    if labels:
        lines.append("Labels:")
        for key, value in labels.items():
            mark = "✓" if key in _REQUIRED_LABELS else " "
            lines.append(f"  {key}: {value} [{mark}]")
        lines.extend(f"  {label}: MISSING [✗]" for label in _REQUIRED_LABELS if label not in labels)
    else:
        lines.append("Labels: None (Missing required labels: app, version) [✗]")

    return "\n".join(lines) + "\n"