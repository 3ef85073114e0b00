import sys
from collections import Counter
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer import Argument, Option

from kubeplate.config import ProjectConfig
from kubeplate.errors import ConfigError, CredentialsError, DecodeError, RenderError
from kubeplate.kube.credentials import load_api_client
from kubeplate.pipeline import apply as apply_template
from kubeplate.reconciler import OutcomeStatus

from . import app

STATUS_STYLES = {
    OutcomeStatus.CREATED: "green",
    OutcomeStatus.UPDATED: "green",
    OutcomeStatus.SKIPPED: "yellow",
    OutcomeStatus.FAILED: "red",
}


@app.command()
def apply(
    template: Path = Argument(..., help="The template file to render and apply."),
    namespace: str = Option(
        "default",
        "--namespace",
        "-n",
        envvar="KUBEPLATE_NAMESPACE",
        help="The namespace for namespaced resources that do not specify one. Available to the template as "
        "`namespace`.",
    ),
    values: list[Path] = Option(
        [], "--values", "-f", help="A values file. Can be given multiple times; later files take precedence."
    ),
    kubeconfig: Optional[Path] = Option(None, help="The kubeconfig file to use."),
    context: Optional[str] = Option(None, help="The kubeconfig context to use."),
    in_cluster: bool = Option(
        False, help="Use the in-cluster Kubernetes configuration. The --kubeconfig and --context options are ignored."
    ),
    config: Optional[Path] = Option(
        None, help="The project configuration file. Defaults to the closest `kubeplate.yaml`."
    ),
    max_render_passes: Optional[int] = Option(
        None, min=1, help="The maximum number of rendering passes before giving up."
    ),
    recurse_arrays: Optional[bool] = Option(
        None,
        "--recurse-arrays/--no-recurse-arrays",
        help="Concatenate lists when merging values files instead of replacing them.",
    ),
    preserve_owner_references: Optional[bool] = Option(
        None,
        "--preserve-owner-references/--no-preserve-owner-references",
        help="Keep the ownerReferences of existing objects when updating them.",
    ),
) -> None:
    """
    Render a template and create or update the resulting resources on the cluster.
    """

    try:
        project = ProjectConfig.load(config)
    except ConfigError as exc:
        logger.error("{}", exc)
        sys.exit(1)

    options = project.config.apply_options(
        max_render_passes=max_render_passes,
        recurse_arrays=recurse_arrays,
        preserve_owner_references=preserve_owner_references,
    )

    try:
        api_client = load_api_client(kubeconfig, context, in_cluster)
    except CredentialsError as exc:
        logger.error("{}", exc)
        sys.exit(1)

    try:
        outcomes = apply_template(
            api_client,
            template,
            namespace,
            values,
            options=options,
            registry=project.config.type_registry(),
        )
    except (DecodeError, RenderError) as exc:
        logger.error("{}", exc)
        sys.exit(1)

    counts = Counter(outcome.status for outcome in outcomes)
    logger.info(
        "{} created, {} updated, {} skipped, {} failed",
        counts[OutcomeStatus.CREATED],
        counts[OutcomeStatus.UPDATED],
        counts[OutcomeStatus.SKIPPED],
        counts[OutcomeStatus.FAILED],
    )

    table = Table()
    table.add_column("Kind", justify="right", style="cyan")
    table.add_column("Namespace")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Reason")
    for outcome in outcomes:
        table.add_row(
            outcome.kind,
            outcome.namespace or "",
            outcome.name,
            f"[{STATUS_STYLES[outcome.status]}]{outcome.status.value}[/]",
            escape(outcome.reason or ""),
        )
    Console().print(table)

    if counts[OutcomeStatus.FAILED]:
        sys.exit(1)
