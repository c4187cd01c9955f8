"""Pod log retrieval and colour formatting for the terminal views."""
from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

from k8srules.cluster import KubeError

_SAMPLE_LOGS = """2023-05-15 12:00:01 INFO Starting application
2023-05-15 12:00:02 INFO Connected to database
2023-05-15 12:00:03 INFO Service initialized
2023-05-15 12:00:04 INFO Starting HTTP server on port 8080
2023-05-15 12:01:15 INFO Received request: GET /api/status
2023-05-15 12:02:30 WARN High CPU usage detected
2023-05-15 12:03:45 INFO Received request: POST /api/data"""

_SCREEN_MESSAGES = (
    (35, "INFO Starting application"),
    (30, "INFO Connecting to database"),
    (25, "WARN Slow database connection"),
    (20, "INFO Connection established"),
    (15, "ERROR Failed to process request: timeout"),
    (10, "INFO Processing new request"),
    (5, "INFO Request completed successfully"),
    (0, "INFO System healthy"),
)

_ERROR_WORDS = ("error", "exception", "fail")


def sample_pod_logs() -> str:
    """Return a fixed block of sample log lines."""
    return _SAMPLE_LOGS


def _format_line(line: str) -> str:
    parts = line.split(" ", 1)
    if len(parts) != 2:
        return line
    timestamp, content = parts
    lowered = content.lower()
    if any(word in lowered for word in _ERROR_WORDS):
        return f"[gray]{timestamp}[white] [red]{content}[white]"
    if "warn" in lowered:
        return f"[gray]{timestamp}[white] [yellow]{content}[white]"
    return f"[gray]{timestamp}[white] {content}"


def format_log_entry(entry: str) -> str:
    """Colour each non-blank line: grey timestamp, red errors, yellow warnings."""
    stripped = (line.strip() for line in entry.strip().split("\n"))
    return "\n".join(_format_line(line) for line in stripped if line) + "\n"


def _rfc3339(moment: datetime) -> str:
    text = moment.replace(microsecond=0).isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def log_screen(now: datetime | None = None) -> str:
    """Formatted sample logs stamped at intervals leading up to ``now``."""
    moment = datetime.now(timezone.utc).astimezone() if now is None else now
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return "".join(
        format_log_entry(f"{_rfc3339(moment - timedelta(seconds=ago))} {message}")
        for ago, message in _SCREEN_MESSAGES
    )


def fetch_pod_logs(client, namespace: str, pod_name: str, container_name: str, tail_lines: int) -> str:
    """Fetch and format the last lines of a container's log."""
    if client is None:
        return "Kubernetes client not initialized"
    try:
        text = client.read_pod_logs(namespace, pod_name, container_name, tail_lines)
    except KubeError as err:
        raise KubeError(f"error opening log stream: {err}", err.status_code) from err
    return format_log_entry(text)


def iter_formatted_logs(client, namespace: str, pod_name: str, container_name: str) -> Iterator[str]:
    """Follow a container's log, yielding each received chunk formatted."""
    try:
        chunks = client.stream_pod_logs(namespace, pod_name, container_name)
    except KubeError as err:
        raise KubeError(f"Error getting logs: {err}", err.status_code) from err
    for chunk in chunks:
        if chunk:
            yield format_log_entry(chunk)