"""
The end-to-end apply pipeline: values files are merged, the template is rendered against them, the result is decoded
into resources and every resource is created or updated on the cluster.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kubeplate.errors import DecodeError, TemplateNotFound
from kubeplate.kube.discovery import ResourceResolver
from kubeplate.kube.registry import TypeRegistry
from kubeplate.manifests import parse_manifests
from kubeplate.reconciler import OutcomeStatus, ReconciliationOutcome, Reconciler
from kubeplate.templating import DEFAULT_MAX_PASSES, TemplateRenderer
from kubeplate.values import combine_values


@dataclass
class ApplyOptions:
    max_render_passes: int = DEFAULT_MAX_PASSES
    strict_undefined: bool = True
    recurse_arrays: bool = False
    preserve_owner_references: bool = False


def render(
    template_path: Path,
    namespace: str,
    value_files: Sequence[Path] = (),
    options: ApplyOptions | None = None,
) -> bytes:
    """
    Merge the values files, inject the *namespace* value and render the template.

    Raises:
        DecodeError: If a values file is invalid.
        RenderError: If the template does not exist or can not be rendered.
    """

    options = options or ApplyOptions()

    values = combine_values(value_files, options.recurse_arrays)
    values["namespace"] = namespace

    if not template_path.is_file():
        raise TemplateNotFound(template_path, "could not stat file")

    renderer = TemplateRenderer(max_passes=options.max_render_passes, strict=options.strict_undefined)
    return renderer.render(template_path, values)


def apply(
    api_client: ApiClient,
    template_path: Path,
    namespace: str,
    value_files: Sequence[Path] = (),
    *,
    options: ApplyOptions | None = None,
    registry: TypeRegistry | None = None,
) -> list[ReconciliationOutcome]:
    """
    Render a template and apply the resulting resources to the cluster.

    Errors that make the input unusable are raised. Resources are applied independently of each other; a resource
    that fails to decode or apply is reported as a `failed` outcome and does not stop the remaining resources from
    being applied.

    Args:
        api_client: The client for the cluster.
        template_path: The template file.
        namespace: The namespace for namespaced resources that do not specify one. Also available to the template
                   as the `namespace` value, overriding any `namespace` from the values files.
        value_files: Values files, merged in order.
        options: Rendering and reconciliation options.
        registry: The local type registry used to construct patches. Defaults to `TypeRegistry.default()`.
    Returns:
        The outcome for every resource, in the order of the manifest.
    Raises:
        DecodeError: If a values file or the rendered manifest is not valid YAML.
        RenderError: If the template does not exist or can not be rendered.
    """

    options = options or ApplyOptions()

    data = render(template_path, namespace, value_files, options)
    parsed = parse_manifests(data, source=str(template_path))

    reconciler = Reconciler(
        ResourceResolver(api_client),
        registry if registry is not None else TypeRegistry.default(),
        preserve_owner_references=options.preserve_owner_references,
    )

    logger.info("Applying {} resource(s) from '{}'", len(parsed.resources), template_path)
    outcomes: list[ReconciliationOutcome] = []
    for entry in parsed.entries:
        if isinstance(entry, DecodeError):
            outcomes.append(
                ReconciliationOutcome(OutcomeStatus.FAILED, "Document", None, entry.source or "", entry.message)
            )
        else:
            outcomes.append(reconciler.reconcile(entry, namespace))

    return outcomes
