# k8srules

`k8srules` is a terminal dashboard for one application in a Kubernetes
cluster. It checks the application against a small set of rules. It fetches
everything once at start-up and then shows five scrollable panels:

- **Deployment Details**: the deployment named after the label. Shows its
  replicas, creation time, selector and labels. The `app` and `version` labels
  are required, and any that are missing are flagged.
- **Service Details**: the service named after the label. Shows its cluster
  IP, type, selector and `scrape_tls` label, and its ports. Each port name is
  marked valid or invalid against the Istio `<protocol>[-<suffix>]` convention.
  The known protocols are http, http2, https, tcp, tls, grpc, mongo and redis.
- **Pod Monitoring**: the name, phase, node and IP of every pod that matches
  the application's selector.
- **Rules Compliance**: one pass or fail line for each of these rules:
  - Service Account: a pod's `serviceAccountName` equals its `app` label.
  - Deployment Labels: a deployment carries `app` and `version`.
  - Service Port Naming: every service port follows the Istio convention.
  - Service scrape_tls Label: the service has `scrape_tls=true`.
- **Krakend Config Check**: whether the application is referenced by a backend
  `url_pattern` or `host` in the KrakenD ConfigMap. The JSON is read from the
  `krakend.json` key, or else from the first key ending in `.json`.

## Installation

```
pip install .
```

## Usage

```
k8srules --label my-app --namespace staging --krakend-map krakend-config
```

| Option          | Default          | Meaning                                  |
|-----------------|------------------|------------------------------------------|
| `--label`       | `py-kannel`      | Application label used to find resources |
| `--namespace`   | `default`        | Namespace to search in                   |
| `--krakend-map` | `krakend-config` | Name of the KrakenD ConfigMap            |

The options are also accepted with a single dash, for example `-label`.

### Kubeconfig

The cluster connection is read from the file named by `KUBECONFIG`. If that
variable is not set, it is read from `~/.kube/config`. The current context is
used. These kinds of credentials are supported:

- a bearer `token` or `tokenFile`
- client certificate and key, given as files or as inline base64 data
- `username` and `password`

The certificate authority can be given as a file or as inline data. Setting
`insecure-skip-tls-verify` turns certificate checking off.

### Finding the pods

Pods are looked up with the selector `app=<label>` first. If none match, the
tool tries `app.kubernetes.io/name=<label>`, and then the bare label. The
selector that found pods is the one used for the compliance rules.

### Keys

| Key                 | Action                         |
|---------------------|--------------------------------|
| Tab / Shift+Tab     | Move between panels            |
| Arrow keys          | Scroll the current panel       |
| Ctrl+C              | Quit                           |

SIGTERM also quits.

### Status symbols

Status symbols are `✅` and `❌` when the terminal appears to support emoji. This
is judged from `TERM_PROGRAM`, `COLORTERM` and `TERM`. Otherwise the symbols
are `[+]` and `[!]`.

## Using it as a library

The checks can be called directly:

```python
from k8srules.cluster import client_from_kubeconfig, default_kubeconfig_path
from k8srules.rules import evaluate_rules, rules_compliance

client = client_from_kubeconfig(default_kubeconfig_path())
print(rules_compliance(client, "default", "app=my-app"))
for result in evaluate_rules(client, "default", "app=my-app"):
    print(result.name, result.passed)
```

The package is made up of these modules:

| Module               | Contents |
|----------------------|----------|
| `k8srules.cluster`   | `ClusterClient`, a read-only REST client for pods, deployments, services, ConfigMaps and pod logs. Also `client_from_kubeconfig`, `default_kubeconfig_path` and the `KubeError` exception. |
| `k8srules.deployment`| `deployment_info`. |
| `k8srules.service`   | `service_info` and `is_valid_istio_port_name`. |
| `k8srules.pod`       | `pod_info`, `pod_info_by_label`, `pod_names_by_label`, `pod_containers` and `pod_logs`. `pod_containers` lists application containers first, then sidecars, then init containers. `pod_logs` picks the first application container when none is named. |
| `k8srules.krakend`   | `krakend_backend_service_check` and `find_service_references`. Failures raise `KrakendCheckError`. |
| `k8srules.logs`      | `format_log_entry`, `fetch_pod_logs` and `iter_formatted_logs`. These mark lines with `[gray]`, `[red]` and `[yellow]` colour tags. `iter_formatted_logs` follows a log as it grows. |
| `k8srules.rules`     | `evaluate_rules`, `rules_compliance`, the individual `validate_*` checks, `status_symbols`, `RuleResult` and `StatusSymbols`. |
| `k8srules.app`       | The command: `main`, `parse_args`, `collect_dashboard`, `build_dashboard` and `pod_panels`. |

Debug messages from the rule checks go to the standard `logging` logger
`k8srules.rules`.

## What it does not do

- The dashboard does not show pod logs. Log fetching and following are only
  available through the `k8srules.logs` and `k8srules.pod` functions.
- Data is fetched once. The dashboard does not refresh.
- Kubeconfig `exec` and `auth-provider` credential plugins are not supported.
- It only reads from the cluster and never changes anything in it.

## Running the tests

```
pip install ".[test]"
pytest
```