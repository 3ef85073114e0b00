from types import SimpleNamespace

import pytest
import urllib3.exceptions

from kubeplate.errors import DiscoveryError, ResolutionMiss
from kubeplate.kube.discovery import ResourceResolver, discovery_path
from kubeplate.manifests import GroupVersionKind
from kubeplate.testing import FakeCluster, api_error

DEPLOYMENT = GroupVersionKind("apps", "v1", "Deployment")


def test_discovery_path() -> None:
    assert discovery_path("v1") == "/api/v1"
    assert discovery_path("apps/v1") == "/apis/apps/v1"
    assert discovery_path("example.com/v1alpha1") == "/apis/example.com/v1alpha1"


def test__ResourceResolver__resolve(cluster: FakeCluster) -> None:
    coordinate = ResourceResolver(cluster.api_client).resolve(DEPLOYMENT)

    assert coordinate is not None
    assert coordinate.resource == "deployments"
    assert coordinate.namespaced is True
    assert coordinate.group_version == "apps/v1"


def test__ResourceResolver__resolve_ignores_subresources(cluster: FakeCluster) -> None:
    # Scale is only served as the deployments/scale sub-resource.
    assert ResourceResolver(cluster.api_client).resolve(GroupVersionKind("apps", "v1", "Scale")) is None


def test__ResourceResolver__resolve_unknown_kind(cluster: FakeCluster) -> None:
    assert ResourceResolver(cluster.api_client).resolve(GroupVersionKind("apps", "v1", "Widget")) is None


def test__ResourceResolver__caches_discovery_per_group_version(cluster: FakeCluster) -> None:
    resolver = ResourceResolver(cluster.api_client)

    resolver.resolve(DEPLOYMENT)
    resolver.resolve(GroupVersionKind("apps", "v1", "Scale"))
    resolver.resolve(GroupVersionKind("", "v1", "ConfigMap"))
    resolver.resolve(DEPLOYMENT)

    assert cluster.requests_for("GET") == ["/apis/apps/v1", "/api/v1"]

    # A new resolver does not share the cache.
    ResourceResolver(cluster.api_client).resolve(DEPLOYMENT)
    assert cluster.requests_for("GET") == ["/apis/apps/v1", "/api/v1", "/apis/apps/v1"]


def test__ResourceResolver__unserved_group_version(cluster: FakeCluster) -> None:
    with pytest.raises(DiscoveryError, match="example.com/v1, Kind=Widget"):
        ResourceResolver(cluster.api_client).resolve(GroupVersionKind("example.com", "v1", "Widget"))


def test__ResourceResolver__api_error(cluster: FakeCluster) -> None:
    cluster.failures[("GET", "/apis/apps/v1")] = api_error(403, "Forbidden", "discovery is forbidden")

    with pytest.raises(DiscoveryError, match="discovery is forbidden"):
        ResourceResolver(cluster.api_client).resolve(DEPLOYMENT)


def test__ResourceResolver__connection_error(cluster: FakeCluster) -> None:
    cluster.failures[("GET", "/apis/apps/v1")] = urllib3.exceptions.MaxRetryError(None, "/apis/apps/v1")

    with pytest.raises(DiscoveryError):
        ResourceResolver(cluster.api_client).resolve(DEPLOYMENT)


@pytest.mark.parametrize(
    "data",
    [
        b"not json",
        b"[]",
        b'{"kind": "APIResourceList"}',
        b'{"kind": "APIResourceList", "resources": ["deployments"]}',
    ],
)
def test__ResourceResolver__malformed_discovery_document(cluster: FakeCluster, data: bytes) -> None:
    cluster.api_client.call_api.side_effect = lambda *args, **kwargs: SimpleNamespace(data=data)

    with pytest.raises(DiscoveryError, match="malformed discovery document"):
        ResourceResolver(cluster.api_client).resolve(DEPLOYMENT)


def test__ResourceResolver__client_for(cluster: FakeCluster) -> None:
    resolver = ResourceResolver(cluster.api_client)

    deployments = resolver.client_for(DEPLOYMENT, "prod")
    assert deployments.path("web") == "/apis/apps/v1/namespaces/prod/deployments/web"

    clusterroles = resolver.client_for(GroupVersionKind("rbac.authorization.k8s.io", "v1", "ClusterRole"), "prod")
    assert clusterroles.namespace is None
    assert clusterroles.path("admin") == "/apis/rbac.authorization.k8s.io/v1/clusterroles/admin"

    with pytest.raises(ResolutionMiss):
        resolver.client_for(GroupVersionKind("apps", "v1", "Widget"), "prod")
