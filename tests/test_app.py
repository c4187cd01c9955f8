import json

import pytest
import urwid

from k8srules.app import (
    DashboardData,
    build_dashboard,
    collect_dashboard,
    format_pod_section,
    main,
    parse_args,
    pod_panels,
)
from k8srules.cluster import KubeError

urwid.set_encoding("utf8")


def _pod(name, app="web"):
    return {
        "metadata": {"name": name, "namespace": "prod", "labels": {"app": app}},
        "spec": {"nodeName": "node-a", "serviceAccountName": app},
        "status": {"phase": "Running", "podIP": "10.0.0.1"},
    }


class FakeClient:
    def __init__(self, pods=None, deployments=None, services=None, config_maps=None):
        self.pods = pods or {}
        self.deployments = deployments or {}
        self.services = services or {}
        self.config_maps = config_maps or {}
        self.pod_queries = []

    def list_pods(self, namespace, label_selector=None):
        self.pod_queries.append(label_selector)
        return list(self.pods.get(label_selector, []))

    def list_deployments(self, namespace, label_selector=None):
        return []

    def list_services(self, namespace, label_selector=None):
        return []

    def get_deployment(self, namespace, name):
        if name not in self.deployments:
            raise KubeError(f'deployments.apps "{name}" not found', 404)
        return self.deployments[name]

    def get_service(self, namespace, name):
        if name not in self.services:
            raise KubeError(f'services "{name}" not found', 404)
        return self.services[name]

    def get_config_map(self, namespace, name):
        if name not in self.config_maps:
            raise KubeError(f'configmaps "{name}" not found', 404)
        return self.config_maps[name]


def _data(**overrides):
    values = dict(
        app_label="web",
        namespace="prod",
        krakend_map="krakend-config",
        label_selector="app=web",
        deployment_info="deployment text",
        service_info="service text",
        pod_info="pod text",
        rules_compliance="rules text",
        krakend_check="krakend text",
    )
    values.update(overrides)
    return DashboardData(**values)


def test_format_pod_section_numbers_each_pod():
    result = format_pod_section("app=x", ["A\n", "B\n"])
    assert result == "Pods with label 'app=x':\n\n--- Pod 1 ---\nA\n\n--- Pod 2 ---\nB\n\n"


def test_format_pod_section_without_pods_is_heading_only():
    assert format_pod_section("app=x", []) == "Pods with label 'app=x':\n\n"


def test_collect_uses_primary_selector():
    client = FakeClient(pods={"app=web": [_pod("web-1")]})
    data = collect_dashboard(client, "web", "prod", "krakend-config")
    assert data.label_selector == "app=web"
    assert data.pod_info.startswith("Pods with label 'app=web':")
    assert "Name: web-1" in data.pod_info


def test_collect_falls_back_to_kubernetes_name_label():
    client = FakeClient(pods={"app.kubernetes.io/name=web": [_pod("web-2")]})
    data = collect_dashboard(client, "web", "prod", "krakend-config")
    assert data.label_selector == "app.kubernetes.io/name=web"
    assert "Name: web-2" in data.pod_info


def test_collect_falls_back_to_bare_label():
    client = FakeClient(pods={"web": [_pod("web-3")]})
    data = collect_dashboard(client, "web", "prod", "krakend-config")
    assert data.label_selector == "web"
    assert "Name: web-3" in data.pod_info


def test_collect_without_pods_keeps_primary_selector():
    client = FakeClient()
    data = collect_dashboard(client, "web", "prod", "krakend-config")
    assert data.label_selector == "app=web"
    assert "No pods found with the specified label" in data.pod_info
    assert client.pod_queries[:6:2] == ["app=web", "app.kubernetes.io/name=web", "web"]


def test_collect_reports_missing_resources_as_text():
    data = collect_dashboard(FakeClient(), "web", "prod", "krakend-config")
    assert data.deployment_info.startswith("Error retrieving deployment: ")
    assert data.service_info.startswith("Error retrieving service: ")
    assert data.krakend_check.startswith(
        "Error analyzing Krakend ConfigMap: failed to get ConfigMap krakend-config"
    )


def test_collect_reports_krakend_reference():
    config = {"endpoints": [{"endpoint": "/v1", "backend": [{"url_pattern": "/x", "host": ["http://web:80"]}]}]}
    client = FakeClient(config_maps={"krakend-config": {"data": {"krakend.json": json.dumps(config)}}})
    data = collect_dashboard(client, "web", "prod", "krakend-config")
    assert data.krakend_check.startswith("✅ Service 'web' found in 1 backend configurations:")
    assert "Endpoint: /v1 → Host: http://web:80" in data.krakend_check


def test_collect_includes_rules_report():
    data = collect_dashboard(FakeClient(), "web", "prod", "krakend-config")
    assert data.rules_compliance.startswith("Compliance check for namespace: prod\n\n")
    assert "Service Account: Pod serviceAccountName matches app label value" in data.rules_compliance


def test_parse_args_defaults():
    args = parse_args([])
    assert (args.label, args.namespace, args.krakend_map) == ("py-kannel", "default", "krakend-config")


def test_parse_args_accepts_single_dash_flags():
    args = parse_args(["-label", "web", "--namespace", "prod", "-krakend-map", "gw"])
    assert (args.label, args.namespace, args.krakend_map) == ("web", "prod", "gw")


def test_dashboard_titles():
    dashboard = build_dashboard(_data())
    assert dashboard.titles == [
        "Deployment Details",
        "Service Details",
        "Pod Monitoring (label: app=web)",
        "Rules Compliance",
        "Krakend Config Check (krakend-config)",
    ]


def test_dashboard_starts_on_first_panel():
    dashboard = build_dashboard(_data())
    assert dashboard.focus_index == 0
    assert dashboard.focused_title == "Deployment Details"


def test_tab_moves_forward_and_wraps():
    dashboard = build_dashboard(_data())
    assert dashboard.keypress((120, 40), "tab") is None
    assert dashboard.focus_index == 1
    for _ in range(4):
        dashboard.keypress((120, 40), "tab")
    assert dashboard.focus_index == 0


def test_shift_tab_moves_backward_and_wraps():
    dashboard = build_dashboard(_data())
    assert dashboard.keypress((120, 40), "shift tab") is None
    assert dashboard.focused_title == "Krakend Config Check (krakend-config)"
    dashboard.keypress((120, 40), "shift tab")
    assert dashboard.focused_title == "Rules Compliance"


def test_other_keys_pass_through():
    dashboard = build_dashboard(_data())
    assert dashboard.keypress((120, 40), "x") == "x"
    assert dashboard.focus_index == 0


def test_dashboard_renders_header_and_content():
    dashboard = build_dashboard(_data())
    canvas = dashboard.render((120, 40))
    text = b"\n".join(canvas.text).decode("utf-8", "replace")
    assert "k8s-viewer-rules - Label: web - Namespace: prod" in text
    assert "deployment text" in text
    assert "Rules Compliance" in text


def test_pod_panels_without_pods_shows_message():
    pile = pod_panels(["No pods found with the specified label"])
    assert len(pile.contents) == 2
    assert pile.contents[1][0].text == "No pods found with the specified label"


def test_pod_panels_error_shows_message():
    pile = pod_panels(["Error retrieving pods: boom"])
    assert len(pile.contents) == 2
    assert pile.contents[1][0].text == "Error retrieving pods: boom"


@pytest.mark.parametrize("count", [1, 2, 3])
def test_pod_panels_box_per_pod_with_spacers(count):
    pile = pod_panels([f"Name: pod-{n}\n" for n in range(count)])
    assert len(pile.contents) == 1 + count + (count - 1)


def test_main_fails_on_missing_kubeconfig(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("KUBECONFIG", str(tmp_path / "missing"))
    assert main(["--label", "web"]) == 1
    captured = capsys.readouterr()
    assert "Using parameters:\n  Label: web\n  Namespace: default" in captured.out
    assert "Error building kubeconfig" in captured.err