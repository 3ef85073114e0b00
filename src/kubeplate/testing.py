"""
In-memory stand-in for the Kubernetes API, used by the test suite. Not part of the distribution.
"""

import copy
import json
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

from kubernetes.client.exceptions import ApiException

from kubeplate.kube.discovery import discovery_path
from kubeplate.values import merge_values


def api_error(status: int, reason: str, message: str) -> ApiException:
    exc = ApiException(status=status, reason=reason)
    exc.body = json.dumps({"kind": "Status", "status": "Failure", "reason": reason, "message": message, "code": status})
    return exc


class FakeCluster:
    """
    Serves `ApiClient.call_api()` from memory: discovery documents for the registered group-versions and an object
    store that supports create, get and patch.
    """

    def __init__(self) -> None:
        self.discovery: dict[str, list[dict[str, Any]]] = {}
        self.objects: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str]] = []
        self.patches: list[tuple[str, str, dict[str, Any]]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.api_client = MagicMock()
        self.api_client.call_api.side_effect = self._call_api

    def serve(self, group_version: str, *resources: dict[str, Any]) -> None:
        self.discovery.setdefault(group_version, []).extend(resources)

    def requests_for(self, method: str) -> list[str]:
        return [path for m, path in self.requests if m == method]

    def _call_api(
        self,
        path: str,
        method: str,
        header_params: dict[str, str] | None = None,
        body: Any = None,
        **kwargs: Any,
    ) -> SimpleNamespace:
        self.requests.append((method, path))
        if (method, path) in self.failures:
            raise self.failures[(method, path)]

        for group_version, resources in self.discovery.items():
            if method == "GET" and path == discovery_path(group_version):
                return self._response({"kind": "APIResourceList", "groupVersion": group_version, "resources": resources})

        if method == "POST":
            key = f"{path}/{body['metadata']['name']}"
            if key in self.objects:
                raise api_error(409, "AlreadyExists", f"{body['kind']} {body['metadata']['name']!r} already exists")
            self.objects[key] = copy.deepcopy(body)
            return self._response(body)

        if path not in self.objects:
            raise api_error(404, "NotFound", f"the server could not find the requested resource ({path})")

        if method == "PATCH":
            assert header_params is not None
            self.patches.append((path, header_params["Content-Type"], copy.deepcopy(body)))
            merge_values(self.objects[path], copy.deepcopy(body))

        return self._response(self.objects[path])

    @staticmethod
    def _response(data: Any) -> SimpleNamespace:
        return SimpleNamespace(data=json.dumps(data).encode())

