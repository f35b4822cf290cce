"""Live-cluster provider built on the official ``kubernetes`` client.

Every read carries a request deadline. Transient failures (5xx, 429,
connection errors, timeouts) are retried with exponential backoff;
not-found and malformed requests fail immediately.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import urllib3
from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException

from podreach.config import PodReachConfig
from podreach.errors import (
    InvalidInputError,
    NotFoundError,
    PodReachError,
    TransientProviderError,
)
from podreach.policy.loader import (
    parse_namespace,
    parse_network_policy,
    parse_workload,
)
from podreach.policy.models import Namespace, NetworkPolicy, Workload

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class KubeProvider:
    """Reads pods, namespaces and NetworkPolicies from a Kubernetes API server."""

    def __init__(
        self,
        kubeconfig: str | Path | None = None,
        context: str | None = None,
        in_cluster: bool = False,
        request_timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        api_client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._kubeconfig = str(kubeconfig) if kubeconfig else None
        self._context = context
        self._in_cluster = in_cluster
        self._request_timeout = request_timeout
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base
        self._sleep = sleep
        self._api_client = api_client
        self._core_v1: Any = None
        self._networking_v1: Any = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PodReachConfig) -> KubeProvider:
        return cls(
            kubeconfig=config.kubeconfig,
            context=config.context,
            in_cluster=config.in_cluster,
            request_timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
        )

    def _init_client(self) -> None:
        """Load cluster credentials once; safe under concurrent first use."""
        with self._lock:
            if self._core_v1 is not None:
                return
            if self._api_client is None:
                try:
                    if self._in_cluster:
                        kube_config.load_incluster_config()
                    else:
                        kube_config.load_kube_config(
                            config_file=self._kubeconfig,
                            context=self._context,
                        )
                except (kube_config.ConfigException, OSError) as exc:
                    raise PodReachError(
                        f"cannot load cluster configuration: {exc}",
                        step="client configuration",
                    ) from exc
                self._api_client = client.ApiClient()
            self._networking_v1 = client.NetworkingV1Api(self._api_client)
            self._core_v1 = client.CoreV1Api(self._api_client)

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)

    def _call(self, step: str, what: str, fn: Callable[..., T], *args: Any) -> T:
        """Run one API read with deadline and bounded retry.

        Callers run ``_init_client`` first so ``fn`` is a bound API method.
        """
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                return fn(*args, _request_timeout=self._request_timeout)
            except ApiException as exc:
                if exc.status == 404:
                    raise NotFoundError(f"{what} not found", step=step) from exc
                if exc.status in (400, 422):
                    raise InvalidInputError(
                        f"{what}: {exc.reason}", step=step
                    ) from exc
                if exc.status and exc.status not in _RETRYABLE_STATUS:
                    raise PodReachError(
                        f"{what}: HTTP {exc.status} {exc.reason}", step=step
                    ) from exc
                last_error = exc
            except urllib3.exceptions.HTTPError as exc:
                last_error = exc

            if attempt < self._max_retries:
                backoff = self._backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    "%s attempt %d/%d failed: %s. Retrying in %.1fs",
                    what,
                    attempt,
                    self._max_retries,
                    last_error,
                    backoff,
                )
                self._sleep(backoff)

        raise TransientProviderError(
            f"{what}: all {self._max_retries} attempts failed ({last_error})",
            step=step,
        ) from last_error

    def get_workload(self, namespace: str, name: str) -> Workload:
        self._init_client()
        pod = self._call(
            "endpoint resolution",
            f"pod {namespace}/{name}",
            self._core_v1.read_namespaced_pod,
            name,
            namespace,
        )
        return parse_workload({"kind": "Pod", **self._to_dict(pod)})

    def get_namespace(self, name: str) -> Namespace:
        self._init_client()
        ns = self._call(
            "endpoint resolution",
            f"namespace {name}",
            self._core_v1.read_namespace,
            name,
        )
        return parse_namespace(self._to_dict(ns))

    def list_policies(self, namespace: str) -> list[NetworkPolicy]:
        self._init_client()
        result = self._call(
            "policy listing",
            f"network policies in {namespace}",
            self._networking_v1.list_namespaced_network_policy,
            namespace,
        )
        return [parse_network_policy(self._to_dict(p)) for p in result.items]

    def list_workloads(self, namespace: str) -> list[Workload]:
        self._init_client()
        result = self._call(
            "workload listing",
            f"pods in {namespace}",
            self._core_v1.list_namespaced_pod,
            namespace,
        )
        return [
            parse_workload({"kind": "Pod", **self._to_dict(p)}) for p in result.items
        ]
