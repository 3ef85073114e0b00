"""
Kubeplate renders parameterized Kubernetes manifests and applies them to a cluster, resolving the API endpoint of
every resource at runtime.
"""

from enum import Enum
import sys
from typing import Any
from loguru import logger
from typer import Option, Typer


def new_typer(**kwargs: Any) -> Typer:
    return Typer(no_args_is_help=True, pretty_exceptions_enable=False, **kwargs)


app = new_typer(help=__doc__)


from . import apply  # noqa: F401,E402
from . import template  # noqa: F401,E402


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@app.callback()
def _callback(
    log_level: LogLevel = Option(LogLevel.INFO, "--log-level", "-l", help="The log level to use."),
) -> None:
    logger.remove()
    logger.add(sys.stderr, level=log_level.name)


def main() -> None:
    app()
