"""
The local type registry declares which resource kinds kubeplate knows the schema of. It is consulted when an existing
resource is updated with a strategic merge patch, which the API server only supports for kinds with a known schema.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from kubeplate.manifests import GroupVersionKind

DEFAULT_TYPES: tuple[tuple[str, str], ...] = (
    ("v1", "ConfigMap"),
    ("v1", "Endpoints"),
    ("v1", "LimitRange"),
    ("v1", "Namespace"),
    ("v1", "PersistentVolume"),
    ("v1", "PersistentVolumeClaim"),
    ("v1", "Pod"),
    ("v1", "ReplicationController"),
    ("v1", "ResourceQuota"),
    ("v1", "Secret"),
    ("v1", "Service"),
    ("v1", "ServiceAccount"),
    ("apps/v1", "DaemonSet"),
    ("apps/v1", "Deployment"),
    ("apps/v1", "ReplicaSet"),
    ("apps/v1", "StatefulSet"),
    ("autoscaling/v2", "HorizontalPodAutoscaler"),
    ("batch/v1", "CronJob"),
    ("batch/v1", "Job"),
    ("networking.k8s.io/v1", "Ingress"),
    ("networking.k8s.io/v1", "IngressClass"),
    ("networking.k8s.io/v1", "NetworkPolicy"),
    ("policy/v1", "PodDisruptionBudget"),
    ("rbac.authorization.k8s.io/v1", "ClusterRole"),
    ("rbac.authorization.k8s.io/v1", "ClusterRoleBinding"),
    ("rbac.authorization.k8s.io/v1", "Role"),
    ("rbac.authorization.k8s.io/v1", "RoleBinding"),
    ("scheduling.k8s.io/v1", "PriorityClass"),
    ("storage.k8s.io/v1", "StorageClass"),
)
""" The (apiVersion, kind) pairs that are known to the default registry. """


class TypeRegistry:
    """
    An immutable catalog of known resource types, indexed by kind. Use `TypeRegistry.default()` for the built-in
    Kubernetes types and `with_types()` to derive a registry that knows additional types.
    """

    def __init__(self, types: Iterable[GroupVersionKind] = ()) -> None:
        index: dict[str, list[GroupVersionKind]] = {}
        for gvk in types:
            entries = index.setdefault(gvk.kind, [])
            if gvk not in entries:
                entries.append(gvk)
        self._index: Mapping[str, tuple[GroupVersionKind, ...]] = MappingProxyType(
            {kind: tuple(entries) for kind, entries in index.items()}
        )

    def __repr__(self) -> str:
        return f"TypeRegistry({len(self)} types)"

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._index.values())

    def __iter__(self):
        for entries in self._index.values():
            yield from entries

    def __contains__(self, kind: object) -> bool:
        return kind in self._index

    @staticmethod
    def default() -> "TypeRegistry":
        return TypeRegistry.from_pairs(DEFAULT_TYPES)

    @staticmethod
    def from_pairs(pairs: Iterable[tuple[str, str]]) -> "TypeRegistry":
        """
        Create a registry from `(apiVersion, kind)` pairs.
        """

        return TypeRegistry(GroupVersionKind.from_api_version(api_version, kind) for api_version, kind in pairs)

    def with_types(self, types: Iterable[GroupVersionKind]) -> "TypeRegistry":
        """
        Return a new registry that contains the types of this registry and *types*.
        """

        return TypeRegistry([*self, *types])

    def kinds_for(self, kind: str) -> list[GroupVersionKind]:
        """
        Return all registered group-version-kinds for the given kind name, in registration order. The list is empty
        if the kind is unknown.
        """

        return list(self._index.get(kind, ()))
