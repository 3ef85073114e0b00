import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from typer import Argument, Option

from kubeplate.config import ProjectConfig
from kubeplate.errors import ConfigError, DecodeError, RenderError
from kubeplate.pipeline import render

from . import app


@app.command()
def template(
    template: Path = Argument(..., help="The template file to render."),
    namespace: str = Option(
        "default",
        "--namespace",
        "-n",
        envvar="KUBEPLATE_NAMESPACE",
        help="The value of `namespace` in the template.",
    ),
    values: list[Path] = Option(
        [], "--values", "-f", help="A values file. Can be given multiple times; later files take precedence."
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
) -> None:
    """
    Render a template and print the result, without contacting the cluster.
    """

    try:
        project = ProjectConfig.load(config)
        options = project.config.apply_options(max_render_passes=max_render_passes, recurse_arrays=recurse_arrays)
        data = render(template, namespace, values, options)
    except (ConfigError, DecodeError, RenderError) as exc:
        logger.error("{}", exc)
        sys.exit(1)

    sys.stdout.write(data.decode("utf-8"))
