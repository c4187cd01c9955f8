"""Command-line entry point and terminal dashboard."""
from __future__ import annotations

import argparse
import os
import re
import signal
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass

import urwid

from k8srules.cluster import KubeError, client_from_kubeconfig, default_kubeconfig_path
from k8srules.deployment import deployment_info
from k8srules.krakend import KrakendCheckError, krakend_backend_service_check
from k8srules.pod import pod_info_by_label, pod_names_by_label
from k8srules.rules import rules_compliance
from k8srules.service import service_info

_NO_PODS = "No pods found with the specified label"
_HELP = "Use Tab to switch focus between panels. Use arrow keys to scroll content. Press Ctrl+C to exit."
_LOADING = "Loading data from Kubernetes cluster...\nThis may take a few seconds."

_PALETTE = [
    ("gray", "dark gray", ""),
    ("white", "white", ""),
    ("red", "light red", ""),
    ("yellow", "yellow", ""),
]
_COLOR_TAG = re.compile(r"\[(gray|white|red|yellow)\]")


@dataclass(frozen=True)
class DashboardData:
    """Everything the dashboard shows, fetched up front."""

    app_label: str
    namespace: str
    krakend_map: str
    label_selector: str
    deployment_info: str
    service_info: str
    pod_info: str
    rules_compliance: str
    krakend_check: str


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the command-line options."""
    parser = argparse.ArgumentParser(prog="k8srules", description="Kubernetes rules viewer")
    parser.add_argument(
        "--label", "-label", dest="label", default="py-kannel",
        help="Application label to filter resources",
    )
    parser.add_argument(
        "--namespace", "-namespace", dest="namespace", default="default",
        help="Kubernetes namespace to search in",
    )
    parser.add_argument(
        "--krakend-map", "-krakend-map", dest="krakend_map", default="krakend-config",
        help="Name of the Krakend ConfigMap to look for",
    )
    return parser.parse_args(argv)


def format_pod_section(label_selector: str, pod_infos: Sequence[str]) -> str:
    """Join the per-pod descriptions under one heading."""
    parts = [f"Pods with label '{label_selector}':\n\n"]
    parts.extend(f"--- Pod {number} ---\n{info}\n" for number, info in enumerate(pod_infos, start=1))
    return "".join(parts)


def collect_dashboard(client, app_label: str, namespace: str, krakend_map: str) -> DashboardData:
    """Fetch all panel contents, trying several label selectors for the pods."""
    primary = f"app={app_label}"
    label_selector = primary
    pod_infos: list[str] = []
    for selector in (primary, f"app.kubernetes.io/name={app_label}", app_label):
        names = pod_names_by_label(client, namespace, selector)
        pod_infos = pod_info_by_label(client, namespace, selector)
        if names:
            label_selector = selector
            break

    try:
        krakend_check = krakend_backend_service_check(client, namespace, krakend_map, app_label)
    except KrakendCheckError as err:
        krakend_check = f"Error analyzing Krakend ConfigMap: {err}"

    return DashboardData(
        app_label=app_label,
        namespace=namespace,
        krakend_map=krakend_map,
        label_selector=label_selector,
        deployment_info=deployment_info(client, namespace, app_label),
        service_info=service_info(client, namespace, app_label),
        pod_info=format_pod_section(label_selector, pod_infos),
        rules_compliance=rules_compliance(client, namespace, label_selector),
        krakend_check=krakend_check,
    )


def _markup(line: str):
    """Turn inline colour tags such as ``[red]`` into urwid text markup."""
    pieces = _COLOR_TAG.split(line)
    markup: list = []
    attr: str | None = None
    for position, piece in enumerate(pieces):
        if position % 2:
            attr = piece
        elif piece:
            markup.append((attr, piece) if attr else piece)
    return markup or ""


def _scroll_box(text: str, *, colors: bool = False) -> urwid.ListBox:
    lines = text.rstrip("\n").split("\n")
    rows = [urwid.Text(_markup(line) if colors else line) for line in lines]
    return urwid.ListBox(urwid.SimpleFocusListWalker(rows))


def _panel(title: str, text: str, *, colors: bool = False) -> urwid.LineBox:
    return urwid.LineBox(_scroll_box(text, colors=colors), title=title)


class _Dashboard(urwid.WidgetWrap):
    """Main layout with Tab / Shift-Tab cycling between the five panels."""

    def __init__(self, data: DashboardData) -> None:
        self.titles = [
            "Deployment Details",
            "Service Details",
            f"Pod Monitoring (label: {data.label_selector})",
            "Rules Compliance",
            f"Krakend Config Check ({data.krakend_map})",
        ]
        texts = [data.deployment_info, data.service_info, data.pod_info, data.rules_compliance, data.krakend_check]
        panels = [
            _panel(title, text, colors=(index == 2))
            for index, (title, text) in enumerate(zip(self.titles, texts))
        ]
        header = urwid.Text(
            f"k8s-viewer-rules - Label: {data.app_label} - Namespace: {data.namespace}", align="center"
        )
        self._columns = urwid.Columns([("weight", 1, panel) for panel in panels[:3]])
        self._pile = urwid.Pile([
            (3, urwid.Filler(header, valign="top")),
            ("weight", 1, self._columns),
            ("weight", 1, panels[3]),
            ("weight", 1, panels[4]),
            ("pack", urwid.Text(_HELP, align="center")),
        ])
        super().__init__(self._pile)
        self._set_focus(0)

    @property
    def focus_index(self) -> int:
        """Index of the focused panel within ``titles``."""
        if self._pile.focus_position == 1:
            return self._columns.focus_position
        return self._pile.focus_position + 1

    @property
    def focused_title(self) -> str:
        return self.titles[self.focus_index]

    def _set_focus(self, index: int) -> None:
        if index < 3:
            self._pile.focus_position = 1
            self._columns.focus_position = index
        else:
            self._pile.focus_position = index - 1

    def cycle_focus(self, step: int) -> None:
        self._set_focus((self.focus_index + step) % len(self.titles))

    def keypress(self, size, key):
        if key == "tab":
            self.cycle_focus(1)
            return None
        if key == "shift tab":
            self.cycle_focus(-1)
            return None
        return super().keypress(size, key)


def build_dashboard(data: DashboardData) -> _Dashboard:
    """Lay out the dashboard widget for already fetched data."""
    return _Dashboard(data)


def pod_panels(pod_infos: Sequence[str]) -> urwid.Pile:
    """One bordered box per pod, or a single message when there is nothing to show."""
    items: list = [("pack", urwid.Text("Pod Monitoring", align="center"))]
    if len(pod_infos) == 1 and (pod_infos[0] == _NO_PODS or pod_infos[0].startswith("Error")):
        items.append(("pack", urwid.Text(pod_infos[0])))
        return urwid.Pile(items)
    last = len(pod_infos) - 1
    for index, info in enumerate(pod_infos):
        items.append(("weight", 1, _panel(f"Pod {index + 1}", info)))
        if index < last:
            items.append((1, urwid.SolidFill(" ")))
    return urwid.Pile(items)


def _exit_keys(key) -> None:
    if key == "ctrl c":
        raise KeyboardInterrupt


def main(argv: Sequence[str] | None = None) -> int:
    """Run the dashboard until interrupted."""
    args = parse_args(argv)
    print(
        "Using parameters:\n"
        f"  Label: {args.label}\n"
        f"  Namespace: {args.namespace}\n"
        f"  Krakend ConfigMap: {args.krakend_map}"
    )

    try:
        client = client_from_kubeconfig(default_kubeconfig_path())
    except KubeError as err:
        print(err, file=sys.stderr)
        return 1

    loading = urwid.LineBox(urwid.Filler(urwid.Text(_LOADING, align="center")), title="Loading")
    loop = urwid.MainLoop(loading, palette=_PALETTE, unhandled_input=_exit_keys)
    results: list = []

    def show_results(_payload: bytes) -> bool:
        if results:
            outcome = results.pop()
            if isinstance(outcome, DashboardData):
                loop.widget = build_dashboard(outcome)
            else:
                loop.widget = urwid.LineBox(urwid.Filler(urwid.Text(outcome, align="center")), title="Error")
        return False

    notify_fd = loop.watch_pipe(show_results)

    def fetch() -> None:
        try:
            results.append(collect_dashboard(client, args.label, args.namespace, args.krakend_map))
        except KubeError as err:
            results.append(f"Error loading data: {err}")
        os.write(notify_fd, b"1")

    # SIGTERM shuts down the same way as Ctrl+C.
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    threading.Thread(target=fetch, daemon=True).start()

    try:
        loop.run()
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")
        return 0

    print("Application terminated normally")
    return 0