"""Service details with Istio port-naming validation."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from k8srules.cluster import KubeError

_ISTIO_PROTOCOLS = ("http", "http2", "https", "tcp", "tls", "grpc", "mongo", "redis")


def _format_map(values: Mapping[str, Any]) -> str:
    return "map[" + " ".join(f"{key}:{values[key]}" for key in sorted(values)) + "]"


def is_valid_istio_port_name(port_name: str) -> bool:
    """True if the name has the form <protocol>[-<suffix>] for a known protocol."""
    if not port_name:
        return False
    return any(
        port_name == protocol or port_name.startswith(protocol + "-")
        for protocol in _ISTIO_PROTOCOLS
    )


def _port_line(port: Mapping[str, Any]) -> str:
    name = port.get("name", "")
    mark = "✓" if is_valid_istio_port_name(name) else "✗"
    target = port.get("targetPort")
    target_text = "0" if target is None else str(target)
    return (
        f"- Name: {name} [{mark}], Port: {port.get('port', 0)}, "
        f"Target Port: {target_text}, Protocol: {port.get('protocol', '')}\n"
    )


def service_info(client, namespace: str, service_name: str) -> str:
    """Describe a service, its scrape_tls label and the validity of its port names."""
    try:
        service = client.get_service(namespace, service_name)
    except KubeError as err:
        return f"Error retrieving service: {err}"

    metadata = service.get("metadata") or {}
    spec = service.get("spec") or {}
    labels = metadata.get("labels") or {}
    scrape_tls = "true" if labels.get("scrape_tls") == "true" else "false"
    ports = "".join(_port_line(port) for port in spec.get("ports") or [])

    return (
        f"Name: {metadata.get('name', '')}\n"
        f"Namespace: {metadata.get('namespace', '')}\n"
        f"ClusterIP: {spec.get('clusterIP', '')}\n"
        f"Type: {spec.get('type', '')}\n"
        f"Selector: {_format_map(spec.get('selector') or {})}\n"
        f"scrape_tls: {scrape_tls}\n"
        f"Ports:\n{ports}"
    )