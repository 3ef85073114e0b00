"""
Idempotent application of a single resource to the cluster: the resource is created, and if it already exists, it is
updated with a strategic merge patch.
"""

import copy
import json
from dataclasses import dataclass
from enum import Enum

import urllib3.exceptions
from kubernetes.client.exceptions import ApiException
from loguru import logger

from kubeplate.errors import DiscoveryError, ReconciliationError, ResolutionMiss
from kubeplate.kube.client import ResourceClient, api_error_message, is_already_exists
from kubeplate.kube.discovery import ResourceResolver
from kubeplate.kube.registry import TypeRegistry
from kubeplate.manifests import GenericResource
from kubeplate.tools.types import Manifest

SERVER_MANAGED_FIELDS = ("selfLink", "resourceVersion", "uid")
""" Metadata fields that are assigned by the server and must not be sent back to it. """


class OutcomeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ReconciliationOutcome:
    """
    The result of applying a single resource.
    """

    status: OutcomeStatus
    kind: str
    namespace: str | None
    name: str
    reason: str | None = None

    @property
    def reference(self) -> str:
        return f"{self.kind} '{self.namespace or ''}/{self.name}'"

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    def __str__(self) -> str:
        if self.reason:
            return f"{self.reference} {self.status.value}: {self.reason}"
        return f"{self.reference} {self.status.value}"


class Reconciler:
    """
    Applies resources to the cluster.

    Args:
        resolver: Used to find the REST endpoint of each resource.
        registry: The local type catalog, used to construct patch bodies for updates.
        preserve_owner_references: If enabled, updates do not touch the `ownerReferences` of existing objects. By
                                   default they are cleared.
    """

    def __init__(
        self,
        resolver: ResourceResolver,
        registry: TypeRegistry,
        preserve_owner_references: bool = False,
    ) -> None:
        self.resolver = resolver
        self.registry = registry
        self.preserve_owner_references = preserve_owner_references

    def reconcile(self, resource: GenericResource, namespace: str) -> ReconciliationOutcome:
        """
        Create or update *resource*. Namespaced resources are placed in the namespace that is set on the resource,
        falling back to *namespace*. Failures are returned as an outcome with status `failed`.
        """

        try:
            client = self.resolver.client_for(resource.gvk, resource.namespace or namespace)
        except ResolutionMiss as exc:
            logger.warning("Skipping {} '{}': {}", resource.kind, resource.name, exc)
            return self._outcome(OutcomeStatus.SKIPPED, resource, str(exc))
        except (DiscoveryError, ValueError) as exc:
            # ValueError: a namespaced resource that neither the document nor the caller assign a namespace.
            logger.error("Could not get a client to handle {} '{}': {}", resource.kind, resource.name, exc)
            return self._outcome(OutcomeStatus.FAILED, resource, str(exc))

        self.prepare(resource, client)

        try:
            status = self._create_or_update(resource, client)
        except ReconciliationError as exc:
            logger.error("{}", exc)
            return self._outcome(OutcomeStatus.FAILED, resource, exc.message)

        logger.info("{} '{}/{}' has been {}", resource.kind, resource.namespace or "", resource.name, status.value)
        return self._outcome(status, resource)

    def prepare(self, resource: GenericResource, client: ResourceClient) -> None:
        """
        Set the namespace of the resource according to the scope of its client and strip fields that are managed by
        the server.
        """

        resource.namespace = client.namespace
        for key in SERVER_MANAGED_FIELDS:
            resource.metadata.pop(key, None)
        resource.metadata["ownerReferences"] = []

    def build_patch(self, resource: GenericResource) -> Manifest:
        """
        Build the body of a strategic merge patch for *resource*. The group-version-kind of the patch is taken from
        the type registry.

        Raises:
            ReconciliationError: If the kind of the resource is not registered.
        """

        gvks = self.registry.kinds_for(resource.kind)
        if not gvks:
            raise ReconciliationError(
                "update",
                resource.kind,
                resource.namespace,
                resource.name,
                f"kind {resource.kind!r} is not registered in the local type registry",
            )

        gvk = next((item for item in gvks if item == resource.gvk), gvks[0])
        body = Manifest(json.loads(json.dumps(copy.deepcopy(resource.to_dict()), default=str)))
        body["apiVersion"] = gvk.api_version
        body["kind"] = gvk.kind
        if self.preserve_owner_references:
            body["metadata"].pop("ownerReferences", None)
        return body

    def _create_or_update(self, resource: GenericResource, client: ResourceClient) -> OutcomeStatus:
        try:
            client.create(resource.to_dict())
            return OutcomeStatus.CREATED
        except ApiException as exc:
            if not is_already_exists(exc):
                raise ReconciliationError(
                    "create", resource.kind, resource.namespace, resource.name, api_error_message(exc)
                ) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise ReconciliationError("create", resource.kind, resource.namespace, resource.name, str(exc)) from exc

        logger.info(
            "{} '{}/{}' already exists. Updating resource", resource.kind, resource.namespace or "", resource.name
        )
        body = self.build_patch(resource)
        try:
            client.patch(resource.name, body)
        except ApiException as exc:
            raise ReconciliationError(
                "patch", resource.kind, resource.namespace, resource.name, api_error_message(exc)
            ) from exc
        except urllib3.exceptions.HTTPError as exc:
            raise ReconciliationError("patch", resource.kind, resource.namespace, resource.name, str(exc)) from exc
        return OutcomeStatus.UPDATED

    @staticmethod
    def _outcome(status: OutcomeStatus, resource: GenericResource, reason: str | None = None) -> ReconciliationOutcome:
        return ReconciliationOutcome(status, resource.kind, resource.namespace, resource.name, reason)
