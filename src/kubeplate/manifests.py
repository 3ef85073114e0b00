"""
Schema-less representation of Kubernetes resources and decoding of rendered manifests into it.
"""

import json
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import yaml
from loguru import logger

from kubeplate.errors import DecodeError
from kubeplate.tools.types import Manifest

LIST_KIND = "List"
""" The kind of the generic list resource. """


@dataclass(frozen=True)
class GroupVersionKind:
    """
    Identifies the schema of a resource type. The core API group is represented by an empty string.
    """

    group: str
    version: str
    kind: str

    @staticmethod
    def from_api_version(api_version: str, kind: str) -> "GroupVersionKind":
        """
        Create a GroupVersionKind from an `apiVersion` (e.g. `v1` or `apps/v1`) and a kind.
        """

        if "/" in api_version:
            group, version = api_version.split("/", 1)
        else:
            group, version = "", api_version
        return GroupVersionKind(group, version, kind)

    @property
    def group_version(self) -> str:
        """
        The group-version string, as it would appear in the `apiVersion` field.
        """

        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def api_version(self) -> str:
        return self.group_version

    def __str__(self) -> str:
        return f"{self.group_version}, Kind={self.kind}"


class GenericResource:
    """
    A single Kubernetes resource of any kind, backed by its plain manifest data. The group, version and kind of the
    resource are fixed when it is created.

    Raises:
        DecodeError: If the manifest lacks `apiVersion`, `kind` or `metadata.name`.
    """

    def __init__(self, manifest: Manifest) -> None:
        for key in ("apiVersion", "kind"):
            if not isinstance(manifest.get(key), str) or not manifest[key]:
                raise DecodeError(f"resource is missing the '{key}' field")
        metadata = manifest.get("metadata")
        if not isinstance(metadata, dict):
            raise DecodeError(f"{manifest['kind']} resource is missing the 'metadata' field")
        if not isinstance(metadata.get("name"), str) or not metadata["name"]:
            raise DecodeError(f"{manifest['kind']} resource is missing the 'metadata.name' field")

        self._manifest = manifest
        self._gvk = GroupVersionKind.from_api_version(manifest["apiVersion"], manifest["kind"])

    def __repr__(self) -> str:
        return f"GenericResource({self._gvk.group_version} {self.kind} {self.namespace or ''}/{self.name})"

    @property
    def gvk(self) -> GroupVersionKind:
        return self._gvk

    @property
    def api_version(self) -> str:
        return self._gvk.api_version

    @property
    def kind(self) -> str:
        return self._gvk.kind

    @property
    def metadata(self) -> dict[str, Any]:
        return self._manifest["metadata"]

    @property
    def name(self) -> str:
        return self.metadata["name"]

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace") or None

    @namespace.setter
    def namespace(self, value: str | None) -> None:
        if value:
            self.metadata["namespace"] = value
        else:
            self.metadata.pop("namespace", None)

    def to_dict(self) -> Manifest:
        """
        Return the underlying manifest. Changes to the returned dictionary are reflected in the resource.
        """

        return self._manifest


@dataclass
class ParsedManifests:
    """
    The result of decoding a rendered manifest. Documents that could not be decoded into a resource are recorded in
    *errors* instead of aborting the whole manifest.
    """

    entries: list[GenericResource | DecodeError] = field(default_factory=list)
    """ Resources and decode errors, in the order in which they appear in the manifest. """

    @property
    def resources(self) -> list[GenericResource]:
        return [entry for entry in self.entries if isinstance(entry, GenericResource)]

    @property
    def errors(self) -> list[DecodeError]:
        return [entry for entry in self.entries if isinstance(entry, DecodeError)]


def parse_manifests(data: bytes | str, source: str | None = None) -> ParsedManifests:
    """
    Decode a YAML (or JSON) stream into resources. List documents (documents with an `items` sequence) are flattened
    into their items, and items are subject to the same treatment. Documents of kind `List` without items are
    dropped.

    Args:
        data: The manifest data. May contain multiple YAML documents.
        source: A name for the data, used in error messages.
    Raises:
        DecodeError: If *data* is not valid YAML.
    """

    try:
        documents = [doc for doc in yaml.safe_load_all(data) if doc is not None]
    except yaml.YAMLError as exc:
        raise DecodeError(f"could not decode manifest: {exc}", source) from exc

    result = ParsedManifests()
    queue: deque[tuple[Any, str]] = deque((doc, f"document {idx}") for idx, doc in enumerate(documents, 1))

    while queue:
        document, location = queue.popleft()
        where = f"{source}, {location}" if source else location

        if isinstance(document, dict) and isinstance(document.get("items"), list):
            items = document["items"]
            logger.trace("Flattening {} with {} item(s) at {}", document.get("kind"), len(items), where)
            queue.extendleft(reversed([(item, f"{location}, item {idx}") for idx, item in enumerate(items, 1)]))
            continue

        if isinstance(document, dict) and document.get("kind") == LIST_KIND:
            logger.debug("Dropping empty {} at {}", LIST_KIND, where)
            continue

        try:
            if not isinstance(document, dict):
                raise DecodeError(f"expected a mapping, got {type(document).__name__}")
            result.entries.append(GenericResource(_reencode(document)))
        except DecodeError as exc:
            exc.source = where
            logger.warning("Skipping document: {}", exc)
            result.entries.append(exc)

    return result


def _reencode(document: dict[str, Any]) -> Manifest:
    """
    Serialize a document to JSON and decode it again. This detaches it from the containing document and turns
    values that YAML decodes into richer types (such as timestamps) into strings.
    """

    try:
        return Manifest(json.loads(json.dumps(document, default=str)))
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"could not serialize document: {exc}") from exc
