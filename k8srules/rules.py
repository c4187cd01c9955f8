"""Compliance rules evaluated against the pods, deployments and services of an app."""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from k8srules.cluster import KubeError

log = logging.getLogger(__name__)

_EMOJI_TERMINALS = ("iTerm.app", "Apple_Terminal", "vscode", "hyper", "alacritty", "kitty", "terminator")
_ISTIO_PROTOCOLS = frozenset({"http", "http2", "https", "tcp", "tls", "grpc", "mongo", "redis"})
_REQUIRED_LABELS = ("app", "version")


@dataclass(frozen=True)
class StatusSymbols:
    """Markers used for passed and failed rules."""

    success: str
    failure: str


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one validation rule."""

    name: str
    description: str
    passed: bool


def status_symbols(environ: Mapping[str, str] | None = None) -> StatusSymbols:
    """Pick emoji markers when the terminal likely renders them, ASCII otherwise."""
    env = os.environ if environ is None else environ
    term_program = env.get("TERM_PROGRAM", "").lower()
    color_term = env.get("COLORTERM", "")
    term = env.get("TERM", "")

    use_emoji = bool(term_program) and any(name.lower() in term_program for name in _EMOJI_TERMINALS)
    if not use_emoji:
        use_emoji = "truecolor" in color_term or "24bit" in color_term or "xterm-256color" in term

    if use_emoji:
        return StatusSymbols(success="✅", failure="❌")
    return StatusSymbols(success="[+]", failure="[!]")


def _labels(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    return (obj.get("metadata") or {}).get("labels") or {}


def validate_pod_service_account(pod: Mapping[str, Any] | None, app_label: str) -> bool:
    """True if the pod's serviceAccountName equals its ``app`` label value."""
    if not pod:
        return False
    account = (pod.get("spec") or {}).get("serviceAccountName", "")
    if not account:
        return False
    labels = _labels(pod)
    if "app" in labels:
        return account == labels["app"]
    return False


def validate_deployment_labels(deployment: Mapping[str, Any] | None) -> bool:
    """True if the deployment carries every required label."""
    if not deployment:
        return False
    labels = _labels(deployment)
    if not labels:
        return False
    return all(label in labels for label in _REQUIRED_LABELS)


def validate_service_port_naming(service: Mapping[str, Any] | None) -> bool:
    """True if every service port name starts with a known Istio protocol."""
    if not service:
        return False
    ports = (service.get("spec") or {}).get("ports") or []
    log.debug("Validating service ports for service: %s", (service.get("metadata") or {}).get("name", ""))
    log.debug("Service ports: %r", ports)
    if not ports:
        return False
    for port in ports:
        name = port.get("name", "")
        if not name:
            return False
        if name.lower().split("-")[0] not in _ISTIO_PROTOCOLS:
            return False
    return True


def validate_service_has_scrape_tls(service: Mapping[str, Any] | None) -> bool:
    """True if the service has the label ``scrape_tls=true``."""
    if not service:
        return False
    return _labels(service).get("scrape_tls") == "true"


def _any_matching(items: list[dict], check) -> bool:
    return any(check(item) for item in items)


def _find_service(client, namespace: str, app_label: str) -> dict | None:
    clean = app_label.removeprefix("app=").strip('"')
    for selector in (f"app={clean}", f"argocd.argoproj.io/instance={clean}"):
        log.debug("Trying service label selector: %s", selector)
        try:
            services = client.list_services(namespace, selector)
        except KubeError as err:
            log.debug("Service list query for %s failed: %s", selector, err)
            continue
        log.debug("Service list query result for %s - Count: %d", selector, len(services))
        if services:
            return services[0]
    return None


def evaluate_rules(client, namespace: str, app_label: str) -> list[RuleResult]:
    """Run every rule against the resources selected by ``app_label``."""
    log.debug("Starting evaluation with appLabel: %r in namespace: %r", app_label, namespace)

    try:
        pods = client.list_pods(namespace, app_label)
    except KubeError as err:
        log.debug("Pod list query failed: %s", err)
        pods = []
    pods_valid = _any_matching(pods, lambda pod: validate_pod_service_account(pod, app_label))

    try:
        deployments = client.list_deployments(namespace, app_label)
    except KubeError as err:
        log.debug("Deployment list query failed: %s", err)
        deployments = []
    deployments_valid = _any_matching(deployments, validate_deployment_labels)

    ports_valid = False
    scrape_tls_valid = False
    if app_label:
        service = _find_service(client, namespace, app_label)
        if service is not None:
            ports_valid = validate_service_port_naming(service)
            scrape_tls_valid = validate_service_has_scrape_tls(service)

    return [
        RuleResult("Service Account", "Pod serviceAccountName matches app label value", pods_valid),
        RuleResult("Deployment Labels", "Deployment has required labels (app, version)", deployments_valid),
        RuleResult(
            "Service Port Naming",
            f"Service ({app_label}) ports follow Istio naming conventions",
            ports_valid,
        ),
        RuleResult(
            "Service scrape_tls Label",
            f"Service ({app_label}) has label scrape_tls = true",
            scrape_tls_valid,
        ),
    ]


def rules_compliance(client, namespace: str, app_label: str) -> str:
    """Evaluate all rules and format them as a compliance report."""
    results = evaluate_rules(client, namespace, app_label)
    symbols = status_symbols()
    lines = [f"Compliance check for namespace: {namespace}\n\n"]
    lines.extend(
        f"{symbols.success if result.passed else symbols.failure} {result.name}: {result.description}\n"
        for result in results
    )
    return "".join(lines)