import pytest

from k8srules.cluster import KubeError
from k8srules.pod import pod_containers, pod_info, pod_info_by_label, pod_logs, pod_names_by_label


def make_pod(name, account="", containers=(), init=()):
    return {
        "metadata": {"name": name, "namespace": "prod"},
        "spec": {
            "nodeName": "node-a",
            "serviceAccountName": account,
            "containers": [{"name": c} for c in containers],
            "initContainers": [{"name": c} for c in init],
        },
        "status": {"phase": "Running", "podIP": "10.1.2.3"},
    }


class StubClient:
    def __init__(self, pods=(), error=None, log_error=None, logs="log text"):
        self.pods = {pod["metadata"]["name"]: pod for pod in pods}
        self.error = error
        self.log_error = log_error
        self.logs = logs
        self.log_calls = []
        self.selectors = []

    def get_pod(self, namespace, name):
        if self.error:
            raise self.error
        if name not in self.pods:
            raise KubeError(f'pods "{name}" not found', 404)
        return self.pods[name]

    def list_pods(self, namespace, label_selector):
        self.selectors.append(label_selector)
        if self.error:
            raise self.error
        return list(self.pods.values())

    def read_pod_logs(self, namespace, pod_name, container, tail_lines):
        self.log_calls.append((namespace, pod_name, container, tail_lines))
        if self.log_error:
            raise self.log_error
        return self.logs


def test_pod_info_with_service_account():
    info = pod_info(StubClient([make_pod("web-1", account="web")]), "prod", "web-1")
    lines = info.splitlines()
    assert lines[0] == "Name: web-1"
    assert "Node: node-a" in lines
    assert lines[-1] == "ServiceAccountName: web [✓]"


def test_pod_info_without_service_account():
    info = pod_info(StubClient([make_pod("web-1")]), "prod", "web-1")
    assert info.endswith("ServiceAccountName: Not set [✗] (Required for mTLS)\n")


def test_pod_info_error():
    assert pod_info(StubClient(), "prod", "x") == 'Error retrieving pod: pods "x" not found'


def test_pod_info_by_label_lists_every_pod():
    client = StubClient([make_pod("a"), make_pod("b")])
    infos = pod_info_by_label(client, "prod", "app=web")
    assert [info.splitlines()[0] for info in infos] == ["Name: a", "Name: b"]
    assert all(info.endswith("IP: 10.1.2.3\n") for info in infos)
    assert client.selectors == ["app=web"]


def test_pod_info_by_label_empty_and_error():
    assert pod_info_by_label(StubClient(), "prod", "app=web") == ["No pods found with the specified label"]
    failing = StubClient(error=KubeError("forbidden"))
    assert pod_info_by_label(failing, "prod", "app=web") == ["Error retrieving pods: forbidden"]


def test_pod_names_by_label():
    assert pod_names_by_label(StubClient([make_pod("a"), make_pod("b")]), "prod", "app=web") == ["a", "b"]
    assert pod_names_by_label(StubClient(error=KubeError("forbidden")), "prod", "app=web") == []


def test_pod_containers_ordering():
    pod = make_pod("web-1", containers=["istio-proxy", "web", "envoy", "worker", "linkerd"], init=["setup"])
    assert pod_containers(StubClient([pod]), "prod", "web-1") == [
        "web", "worker", "istio-proxy", "envoy", "linkerd", "setup",
    ]


def test_pod_containers_error_is_wrapped():
    with pytest.raises(KubeError) as info:
        pod_containers(StubClient(), "prod", "x")
    assert str(info.value) == 'error retrieving pod: pods "x" not found'
    assert info.value.status_code == 404


def test_pod_logs_picks_application_container():
    client = StubClient([make_pod("web-1", containers=["istio-proxy", "web"])])
    assert pod_logs(client, "prod", "web-1", 50) == "log text"
    assert client.log_calls == [("prod", "web-1", "web", 50)]


def test_pod_logs_uses_named_container():
    client = StubClient()
    assert pod_logs(client, "prod", "web-1", 5, "sidecar") == "log text"
    assert client.log_calls == [("prod", "web-1", "sidecar", 5)]


def test_pod_logs_without_containers():
    with pytest.raises(KubeError, match="no containers found in pod web-1"):
        pod_logs(StubClient([make_pod("web-1")]), "prod", "web-1", 10)


def test_pod_logs_stream_error_is_wrapped():
    client = StubClient(log_error=KubeError("container not ready"))
    with pytest.raises(KubeError) as info:
        pod_logs(client, "prod", "web-1", 10, "web")
    assert str(info.value) == "error opening log stream: container not ready"