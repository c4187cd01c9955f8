"""Terminal dashboard and checks for a Kubernetes application's deployment, service, pods and KrakenD routing."""

__version__ = "0.1.0"