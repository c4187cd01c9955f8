"""Kubernetes API access: kubeconfig loading and a small REST client."""
from __future__ import annotations

import base64
import binascii
import codecs
import os
import tempfile
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import quote

import requests
import yaml

_TIMEOUT = 30.0
_CHUNK_SIZE = 4096


class KubeError(Exception):
    """Raised when the cluster cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def default_kubeconfig_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return $KUBECONFIG if set, otherwise ~/.kube/config."""
    env = os.environ if environ is None else environ
    configured = env.get("KUBECONFIG", "")
    if configured:
        return Path(configured)
    try:
        home = Path.home()
    except RuntimeError as err:
        raise KubeError(f"Error getting user home dir: {err}") from err
    return home / ".kube" / "config"


def _named(doc: Mapping[str, Any], section: str, key: str, name: Any) -> dict:
    for entry in doc.get(section) or []:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry.get(key) or {}
    raise KubeError(f"Error building kubeconfig: {key} {name!r} not found")


def _read_credential_file(path: Path) -> str:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as err:
        raise KubeError(f"Error building kubeconfig: {err}") from err
    return contents.strip()


class _CredentialFiles:
    """Resolves kubeconfig file references and inline base64 data to paths."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir
        self.tempdir: tempfile.TemporaryDirectory | None = None

    def resolve(self, entry: Mapping[str, Any], file_key: str, data_key: str) -> str | None:
        data = entry.get(data_key)
        if data:
            if self.tempdir is None:
                self.tempdir = tempfile.TemporaryDirectory(prefix="k8srules-")
            try:
                raw = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as err:
                raise KubeError(f"Error building kubeconfig: invalid {data_key}: {err}") from err
            target = Path(self.tempdir.name) / data_key
            target.write_bytes(raw)
            return str(target)
        reference = entry.get(file_key)
        if reference:
            path = Path(reference).expanduser()
            return str(path if path.is_absolute() else self.base_dir / path)
        return None


def client_from_kubeconfig(path: str | os.PathLike) -> "ClusterClient":
    """Build a client from the current context of a kubeconfig file."""
    path = Path(path)
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as err:
        raise KubeError(f"Error building kubeconfig: {err}") from err
    except yaml.YAMLError as err:
        raise KubeError(f"Error building kubeconfig: {err}") from err
    if not isinstance(doc, dict):
        raise KubeError("Error building kubeconfig: not a mapping")

    context_name = doc.get("current-context")
    if not context_name:
        raise KubeError("Error building kubeconfig: no current context is set")
    context = _named(doc, "contexts", "context", context_name)
    cluster = _named(doc, "clusters", "cluster", context.get("cluster"))
    user = _named(doc, "users", "user", context["user"]) if context.get("user") else {}

    server = cluster.get("server")
    if not server:
        raise KubeError("Error building kubeconfig: cluster has no server")

    files = _CredentialFiles(path.parent)
    if cluster.get("insecure-skip-tls-verify"):
        verify: bool | str = False
    else:
        verify = files.resolve(cluster, "certificate-authority", "certificate-authority-data") or True

    cert_file = files.resolve(user, "client-certificate", "client-certificate-data")
    key_file = files.resolve(user, "client-key", "client-key-data")
    cert = (cert_file, key_file) if cert_file and key_file else None

    bearer = user.get("token")
    if not bearer and user.get("tokenFile"):
        bearer_path = Path(user["tokenFile"]).expanduser()
        if not bearer_path.is_absolute():
            bearer_path = path.parent / bearer_path
        bearer = _read_credential_file(bearer_path)

    auth = None
    if user.get("username") and user.get("password"):
        auth = (user["username"], user["password"])

    client = ClusterClient(server, token=bearer, verify=verify, cert=cert, auth=auth)
    client._credential_dir = files.tempdir
    return client


def _status_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    text = response.text.strip()
    return text or f"{response.status_code} {response.reason}"


def _iter_text(response: requests.Response) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with response:
        try:
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                text = decoder.decode(chunk)
                if text:
                    yield text
        except requests.RequestException as err:
            raise KubeError(f"Error reading logs: {err}") from err
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail


class ClusterClient:
    """Read-only access to the Kubernetes objects the viewer needs."""

    def __init__(
        self,
        server: str,
        *,
        token: str | None = None,
        verify: bool | str = True,
        cert: tuple[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.server = server.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.session.verify = verify
        if cert:
            self.session.cert = cert
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        if auth:
            self.session.auth = auth
        self._credential_dir: tempfile.TemporaryDirectory | None = None

    def _request(self, path: str, params: dict | None = None, *, stream: bool = False) -> requests.Response:
        timeout = (_TIMEOUT, None) if stream else _TIMEOUT
        try:
            response = self.session.get(self.server + path, params=params, stream=stream, timeout=timeout)
        except requests.RequestException as err:
            raise KubeError(str(err)) from err
        if not response.ok:
            message = _status_message(response)
            response.close()
            raise KubeError(message, response.status_code)
        return response

    def _get_json(self, path: str, params: dict | None = None) -> dict:
        response = self._request(path, params)
        try:
            body = response.json()
        except ValueError as err:
            raise KubeError(f"invalid response from {path}: {err}") from err
        if not isinstance(body, dict):
            raise KubeError(f"invalid response from {path}: expected an object")
        return body

    def _list(self, path: str, label_selector: str | None) -> list[dict]:
        params = {"labelSelector": label_selector} if label_selector else None
        return list(self._get_json(path, params).get("items") or [])

    @staticmethod
    def _core(namespace: str, kind: str) -> str:
        return f"/api/v1/namespaces/{quote(namespace, safe='')}/{kind}"

    @staticmethod
    def _apps(namespace: str, kind: str) -> str:
        return f"/apis/apps/v1/namespaces/{quote(namespace, safe='')}/{kind}"

    def get_pod(self, namespace: str, name: str) -> dict:
        return self._get_json(f"{self._core(namespace, 'pods')}/{quote(name, safe='')}")

    def list_pods(self, namespace: str, label_selector: str | None = None) -> list[dict]:
        return self._list(self._core(namespace, "pods"), label_selector)

    def get_deployment(self, namespace: str, name: str) -> dict:
        return self._get_json(f"{self._apps(namespace, 'deployments')}/{quote(name, safe='')}")

    def list_deployments(self, namespace: str, label_selector: str | None = None) -> list[dict]:
        return self._list(self._apps(namespace, "deployments"), label_selector)

    def get_service(self, namespace: str, name: str) -> dict:
        return self._get_json(f"{self._core(namespace, 'services')}/{quote(name, safe='')}")

    def list_services(self, namespace: str, label_selector: str | None = None) -> list[dict]:
        return self._list(self._core(namespace, "services"), label_selector)

    def get_config_map(self, namespace: str, name: str) -> dict:
        return self._get_json(f"{self._core(namespace, 'configmaps')}/{quote(name, safe='')}")

    def read_pod_logs(
        self,
        namespace: str,
        pod_name: str,
        container: str | None = None,
        tail_lines: int | None = None,
    ) -> str:
        """Return the (optionally tailed) log of one container."""
        params: dict[str, str] = {}
        if container:
            params["container"] = container
        if tail_lines is not None:
            params["tailLines"] = str(tail_lines)
        path = f"{self._core(namespace, 'pods')}/{quote(pod_name, safe='')}/log"
        with self._request(path, params or None) as response:
            return response.text

    def stream_pod_logs(self, namespace: str, pod_name: str, container: str | None = None) -> Iterator[str]:
        """Follow a container's log with timestamps, yielding text chunks."""
        params = {"follow": "true", "timestamps": "true"}
        if container:
            params["container"] = container
        path = f"{self._core(namespace, 'pods')}/{quote(pod_name, safe='')}/log"
        return _iter_text(self._request(path, params, stream=True))