"""
A generic client for a single REST collection of the Kubernetes API. Unlike the generated API classes of the
`kubernetes` package, this client works for any resource type, including ones that are unknown at build time; it only
needs the coordinate of the resource as reported by the server's discovery endpoint.
"""

import json
from dataclasses import dataclass
from typing import Any

from kubernetes.client.api_client import ApiClient
from kubernetes.client.exceptions import ApiException
from loguru import logger

from kubeplate.tools.types import Manifest

STRATEGIC_MERGE_PATCH = "application/strategic-merge-patch+json"


@dataclass(frozen=True)
class ResourceCoordinate:
    """
    The REST coordinate of a resource type as discovered from the API server.
    """

    group: str
    version: str
    resource: str
    """ The plural resource name used in the REST path, e.g. `deployments`. """

    kind: str
    namespaced: bool

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def path(self, name: str | None = None, namespace: str | None = None) -> str:
        """
        Return the REST path of the collection, or of a named object in the collection.
        """

        if self.group:
            path = f"/apis/{self.group}/{self.version}"
        else:
            path = f"/api/{self.version}"
        if self.namespaced and namespace:
            path += f"/namespaces/{namespace}"
        path += f"/{self.resource}"
        if name:
            path += f"/{name}"
        return path


class ResourceClient:
    """
    Client for the objects of one resource type, optionally scoped to a namespace.
    """

    def __init__(self, api_client: ApiClient, coordinate: ResourceCoordinate, namespace: str | None = None) -> None:
        if coordinate.namespaced and not namespace:
            raise ValueError(f"a namespace is required for namespaced resource {coordinate.resource!r}")
        self.api_client = api_client
        self.coordinate = coordinate
        self.namespace = namespace if coordinate.namespaced else None

    def __repr__(self) -> str:
        return f"ResourceClient({self.path()})"

    def path(self, name: str | None = None) -> str:
        return self.coordinate.path(name, self.namespace)

    def get(self, name: str) -> Manifest:
        return self._request("GET", self.path(name))

    def create(self, body: Manifest) -> Manifest:
        return self._request("POST", self.path(), body=body)

    def patch(self, name: str, body: Manifest) -> Manifest:
        """
        Update an object with a strategic merge patch.
        """

        return self._request("PATCH", self.path(name), body=body, content_type=STRATEGIC_MERGE_PATCH)

    def _request(
        self,
        method: str,
        path: str,
        body: Manifest | None = None,
        content_type: str = "application/json",
    ) -> Manifest:
        logger.trace("{} {}", method, path)
        response = self.api_client.call_api(
            path,
            method,
            header_params={"Accept": "application/json", "Content-Type": content_type},
            body=body,
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
            _preload_content=False,
        )
        if not response.data:
            return Manifest({})
        try:
            return Manifest(json.loads(response.data))
        except ValueError as exc:
            raise ApiException(
                status=getattr(response, "status", None), reason=f"could not decode response from {path}: {exc}"
            ) from exc


def api_error_status(exc: ApiException) -> dict[str, Any]:
    """
    Decode the `Status` object that the API server returns in the body of an error response. Returns an empty
    dictionary if the body is missing or not a `Status` object.
    """

    if not exc.body:
        return {}
    try:
        status = json.loads(exc.body)
    except ValueError:
        return {}
    return status if isinstance(status, dict) else {}


def api_error_message(exc: ApiException) -> str:
    """
    Return the most descriptive message available for an API error.
    """

    status = api_error_status(exc)
    if status.get("message"):
        return str(status["message"])
    return f"({exc.status}) {exc.reason}"


def is_already_exists(exc: ApiException) -> bool:
    """
    Check if an API error signals that the object to create already exists.
    """

    return exc.status == 409 and api_error_status(exc).get("reason") == "AlreadyExists"
