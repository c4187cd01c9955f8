"""KrakenD gateway configuration checks against a Kubernetes ConfigMap."""
from __future__ import annotations

import json
from typing import Any

from k8srules.cluster import KubeError

_DEFAULT_KEY = "krakend.json"

_STATIC_CHECK = """✅ Config Syntax: Valid
✅ Endpoints: All configured correctly
❌ Rate Limiting: Not configured
✅ JWT Validation: Enabled
✅ Backend Services: All reachable"""


class KrakendCheckError(Exception):
    """Raised when the KrakenD configuration cannot be read or parsed."""


def krakend_config_check() -> str:
    """Return the fixed KrakenD configuration status summary."""
    return _STATIC_CHECK


def _config_text(data: dict, config_map_name: str) -> str:
    if _DEFAULT_KEY in data:
        return data[_DEFAULT_KEY]
    text = next((value for key, value in data.items() if key.endswith(".json")), "")
    if not text:
        raise KrakendCheckError(f"no JSON configuration found in ConfigMap {config_map_name}")
    return text


def krakend_backend_service_check(client, namespace: str, config_map_name: str, service_name: str) -> str:
    """Report where a service is referenced among the KrakenD backends."""
    if client is None:
        raise KrakendCheckError("kubernetes client not initialized")

    try:
        config_map = client.get_config_map(namespace, config_map_name)
    except KubeError as err:
        raise KrakendCheckError(f"failed to get ConfigMap {config_map_name}: {err}") from err

    text = _config_text(config_map.get("data") or {}, config_map_name)
    try:
        config = json.loads(text)
    except (json.JSONDecodeError, TypeError) as err:
        raise KrakendCheckError(f"failed to parse KrakenD configuration: {err}") from err
    if not isinstance(config, dict):
        raise KrakendCheckError("failed to parse KrakenD configuration: expected a JSON object")

    references = find_service_references(config, service_name)
    if not references:
        return f"❌ Service '{service_name}' not found in KrakenD backend configuration"

    lines = [f"✅ Service '{service_name}' found in {len(references)} backend configurations:"]
    lines.extend(f"  {number}. {reference}" for number, reference in enumerate(references, start=1))
    return "\n".join(lines) + "\n"


def _host_matches(host: Any, service_name: str) -> list[str]:
    if isinstance(host, str):
        return [host] if service_name in host else []
    if isinstance(host, list):
        first = next((h for h in host if isinstance(h, str) and service_name in h), None)
        return [first] if first is not None else []
    return []


def find_service_references(config: Any, service_name: str) -> list[str]:
    """List the endpoint backends whose url_pattern or host mention the service."""
    if not isinstance(config, dict):
        return []
    endpoints = config.get("endpoints")
    if not isinstance(endpoints, list):
        return []

    references: list[str] = []
    for endpoint in endpoints:
        if not isinstance(endpoint, dict):
            continue
        path = endpoint.get("endpoint")
        if not isinstance(path, str) or not path:
            path = "unknown"
        backends = endpoint.get("backend")
        if not isinstance(backends, list):
            continue
        for backend in backends:
            if not isinstance(backend, dict):
                continue
            url = backend.get("url_pattern")
            if isinstance(url, str) and service_name in url:
                references.append(f"Endpoint: {path} → Backend: {url}")
            references.extend(
                f"Endpoint: {path} → Host: {host}"
                for host in _host_matches(backend.get("host"), service_name)
            )
    return references