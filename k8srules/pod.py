"""Pod details, container discovery and log retrieval."""
from __future__ import annotations

from k8srules.cluster import KubeError

_NO_PODS = "No pods found with the specified label"
_SIDECARS = frozenset({"istio-proxy", "envoy", "linkerd"})


def _summary(pod: dict) -> str:
    metadata = pod.get("metadata") or {}
    spec = pod.get("spec") or {}
    status = pod.get("status") or {}
    return (
        f"Name: {metadata.get('name', '')}\n"
        f"Namespace: {metadata.get('namespace', '')}\n"
        f"Status: {status.get('phase', '')}\n"
        f"Node: {spec.get('nodeName', '')}\n"
        f"IP: {status.get('podIP', '')}\n"
    )


def pod_info(client, namespace: str, pod_name: str) -> str:
    """Describe one pod, including whether a service account is set."""
    try:
        pod = client.get_pod(namespace, pod_name)
    except KubeError as err:
        return f"Error retrieving pod: {err}"

    account = (pod.get("spec") or {}).get("serviceAccountName", "")
    if account:
        account_line = f"ServiceAccountName: {account} [✓]"
    else:
        account_line = "ServiceAccountName: Not set [✗] (Required for mTLS)"
    return f"{_summary(pod)}{account_line}\n"


def pod_info_by_label(client, namespace: str, label_selector: str) -> list[str]:
    """Describe every pod matching the selector; errors become a single entry."""
    try:
        pods = client.list_pods(namespace, label_selector)
    except KubeError as err:
        return [f"Error retrieving pods: {err}"]
    if not pods:
        return [_NO_PODS]
    return [_summary(pod) for pod in pods]


def pod_names_by_label(client, namespace: str, label_selector: str) -> list[str]:
    """Names of the pods matching the selector, or an empty list on error."""
    try:
        pods = client.list_pods(namespace, label_selector)
    except KubeError:
        return []
    return [(pod.get("metadata") or {}).get("name", "") for pod in pods]


def pod_containers(client, namespace: str, pod_name: str) -> list[str]:
    """Container names: application containers, then sidecars, then init containers."""
    try:
        pod = client.get_pod(namespace, pod_name)
    except KubeError as err:
        raise KubeError(f"error retrieving pod: {err}", err.status_code) from err

    spec = pod.get("spec") or {}
    names = [container.get("name", "") for container in spec.get("containers") or []]
    apps = [name for name in names if name not in _SIDECARS]
    sidecars = [name for name in names if name in _SIDECARS]
    inits = [container.get("name", "") for container in spec.get("initContainers") or []]
    return apps + sidecars + inits


def pod_logs(client, namespace: str, pod_name: str, tail_lines: int, container_name: str = "") -> str:
    """Return the last lines of a container's log, picking the app container if none is named."""
    if not container_name:
        containers = pod_containers(client, namespace, pod_name)
        if not containers:
            raise KubeError(f"no containers found in pod {pod_name}")
        container_name = containers[0]
    try:
        return client.read_pod_logs(namespace, pod_name, container_name, tail_lines)
    except KubeError as err:
        raise KubeError(f"error opening log stream: {err}", err.status_code) from err