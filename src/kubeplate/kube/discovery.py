"""
Resolution of resource kinds to their REST coordinates using the API server's discovery endpoints.
"""

import json

import urllib3.exceptions
from kubernetes.client.api_client import ApiClient
from kubernetes.client.exceptions import ApiException
from loguru import logger

from kubeplate.errors import DiscoveryError, ResolutionMiss
from kubeplate.kube.client import ResourceClient, ResourceCoordinate, api_error_message
from kubeplate.manifests import GroupVersionKind


def discovery_path(group_version: str) -> str:
    """
    Return the path of the discovery document for a group-version. The core group is served under `/api`.
    """

    if "/" in group_version:
        return f"/apis/{group_version}"
    return f"/api/{group_version}"


class ResourceResolver:
    """
    Resolves resource kinds to `ResourceCoordinate`s by querying the API server's discovery document of the kind's
    group-version.

    Discovery documents are cached per group-version for the lifetime of the resolver. Create a new resolver for every
    apply run to avoid acting on stale information.
    """

    def __init__(self, api_client: ApiClient) -> None:
        self.api_client = api_client
        self._cache: dict[str, list[dict]] = {}

    def server_resources(self, gvk: GroupVersionKind) -> list[dict]:
        """
        Return the `resources` of the discovery document (an `APIResourceList`) for the group-version of *gvk*.

        Raises:
            DiscoveryError: If the discovery document can not be retrieved or is malformed.
        """

        group_version = gvk.group_version
        if group_version in self._cache:
            logger.trace("Using cached discovery document for '{}'", group_version)
            return self._cache[group_version]

        path = discovery_path(group_version)
        logger.debug("Retrieving discovery document for '{}' from '{}'", group_version, path)
        try:
            response = self.api_client.call_api(
                path,
                "GET",
                header_params={"Accept": "application/json"},
                auth_settings=["BearerToken"],
                _return_http_data_only=True,
                _preload_content=False,
            )
            document = json.loads(response.data)
        except ApiException as exc:
            logger.error("Unable to retrieve resource list for '{}': {}", group_version, api_error_message(exc))
            raise DiscoveryError(str(gvk), api_error_message(exc)) from exc
        except urllib3.exceptions.HTTPError as exc:
            logger.error("Unable to retrieve resource list for '{}': {}", group_version, exc)
            raise DiscoveryError(str(gvk), str(exc)) from exc
        except ValueError as exc:
            raise DiscoveryError(str(gvk), f"malformed discovery document: {exc}") from exc

        resources = document.get("resources") if isinstance(document, dict) else None
        if not isinstance(resources, list) or not all(isinstance(item, dict) for item in resources):
            raise DiscoveryError(str(gvk), "malformed discovery document: 'resources' is not a list of objects")

        self._cache[group_version] = resources
        return resources

    def resolve(self, gvk: GroupVersionKind) -> ResourceCoordinate | None:
        """
        Find the resource that serves objects of the given kind. Sub-resources (whose name contains a `/`, such as
        `deployments/scale`) are never considered.

        Returns:
            The coordinate of the resource, or `None` if the server does not serve the kind in that group-version.
        Raises:
            DiscoveryError: If the discovery document can not be retrieved or is malformed.
        """

        for resource in self.server_resources(gvk):
            name = resource.get("name")
            if resource.get("kind") == gvk.kind and isinstance(name, str) and "/" not in name:
                return ResourceCoordinate(
                    group=gvk.group,
                    version=gvk.version,
                    resource=name,
                    kind=gvk.kind,
                    namespaced=bool(resource.get("namespaced", False)),
                )

        logger.debug("Kind {} is not served by the server", gvk)
        return None

    def client_for(self, gvk: GroupVersionKind, namespace: str | None = None) -> ResourceClient:
        """
        Construct a client for the resource that serves the given kind. If the resource is namespaced, the client is
        scoped to *namespace*.

        Raises:
            DiscoveryError: If the discovery document can not be retrieved or is malformed.
            ResolutionMiss: If the server does not serve the kind.
        """

        coordinate = self.resolve(gvk)
        if coordinate is None:
            raise ResolutionMiss(str(gvk))
        return ResourceClient(self.api_client, coordinate, namespace if coordinate.namespaced else None)
