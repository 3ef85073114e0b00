"""
Rendering of Jinja2 templates against a set of values.

Rendering is repeated until the output no longer contains template syntax. This allows values to contain template
fragments themselves, which are expanded in a subsequent pass. Intermediate results are written to a temporary
directory that only lives for the duration of a single `TemplateRenderer.render()` call.
"""

import base64
import hashlib
import json
import os
import secrets
import string
from collections.abc import Mapping
from pathlib import Path
from tempfile import TemporaryDirectory
from textwrap import indent
from typing import Any

import jinja2
import yaml
from loguru import logger

from kubeplate.errors import RenderError, TemplateDidNotConverge, TemplateNotFound

TEMPLATE_MARKERS = (b"{{", b"{%", b"{#")
""" Sequences that open a Jinja2 expression, statement or comment. """

DEFAULT_MAX_PASSES = 10


def has_template_markers(data: bytes) -> bool:
    """
    Check if *data* contains any sequence that would be interpreted by the template engine.
    """

    return any(marker in data for marker in TEMPLATE_MARKERS)


class TemplateRenderer:
    """
    Renders template files against a set of values. Every top-level key of the values is available as a template
    variable; the full mapping is additionally available as `values`.

    Args:
        max_passes: The maximum number of rendering passes before giving up with a `TemplateDidNotConverge` error.
        strict: Whether referencing an undefined value is an error. If disabled, undefined values render as an empty
                string.
    """

    def __init__(self, max_passes: int = DEFAULT_MAX_PASSES, strict: bool = True) -> None:
        if max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self.max_passes = max_passes
        self.strict = strict

    def render(self, path: Path, parameters: Mapping[str, Any]) -> bytes:
        """
        Render the template file at *path* until no template syntax remains.

        Raises:
            TemplateNotFound: If the file does not exist or can not be read.
            TemplateDidNotConverge: If the output still contains template syntax after `max_passes` passes.
            RenderError: If the template is invalid or rendering fails.
        """

        try:
            source = path.read_bytes()
        except OSError as exc:
            raise TemplateNotFound(path, exc.strerror or str(exc)) from exc

        if not has_template_markers(source):
            logger.trace("Template '{}' contains no template syntax", path)
            return source

        output = self._render_file(path, path.parent, parameters, display_name=str(path))
        passes = 1

        if not has_template_markers(output):
            return output

        with TemporaryDirectory(prefix="kubeplate-") as tmp:
            artifact = Path(tmp) / path.name
            while has_template_markers(output):
                if passes >= self.max_passes:
                    raise TemplateDidNotConverge(
                        path, f"output still contains template syntax after {passes} passes"
                    )
                artifact.write_bytes(output)
                passes += 1
                logger.debug("Template '{}' contains template syntax after rendering, starting pass {}", path, passes)
                output = self._render_file(
                    artifact, path.parent, parameters, display_name=f"{path} (pass {passes})"
                )

        return output

    def render_string(self, template: str, parameters: Mapping[str, Any]) -> str:
        """
        Render a single pass of the given template string.
        """

        env = self._environment(jinja2.BaseLoader(), parameters)
        try:
            return env.from_string(template).render(self._context(parameters))
        except jinja2.TemplateSyntaxError as exc:
            raise RenderError("<string>", exc.message or str(exc), exc.lineno) from exc
        except jinja2.TemplateError as exc:
            raise RenderError("<string>", str(exc)) from exc

    def _render_file(
        self, path: Path, template_dir: Path, parameters: Mapping[str, Any], display_name: str
    ) -> bytes:
        # The directory of the original template stays on the search path so that includes keep working in passes
        # that render the temporary artifact.
        loader = jinja2.FileSystemLoader([str(path.parent), str(template_dir)])
        env = self._environment(loader, parameters)
        try:
            template = env.get_template(path.name)
            return template.render(self._context(parameters)).encode("utf-8")
        except jinja2.TemplateSyntaxError as exc:
            raise RenderError(display_name, exc.message or str(exc), exc.lineno) from exc
        except jinja2.TemplateNotFound as exc:
            raise RenderError(display_name, f"template not found: {exc.name}") from exc
        except jinja2.TemplateError as exc:
            raise RenderError(display_name, str(exc)) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(display_name, str(exc)) from exc

    def _environment(self, loader: jinja2.BaseLoader, parameters: Mapping[str, Any]) -> jinja2.Environment:
        env = jinja2.Environment(
            loader=loader,
            undefined=jinja2.StrictUndefined if self.strict else jinja2.Undefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

        functions = TemplateFunctions(parameters)
        for key in dir(functions):
            if not key.startswith("_"):
                env.globals[key] = getattr(functions, key)
                env.filters[key] = getattr(functions, key)

        return env

    @staticmethod
    def _context(parameters: Mapping[str, Any]) -> dict[str, Any]:
        return {**parameters, "values": parameters}


class TemplateFunctions:
    """
    Functions available to templates, both as globals and as filters. The names follow the function library that
    Helm chart authors are used to.
    """

    def __init__(self, parameters: Mapping[str, Any]) -> None:
        self._parameters = parameters

    def lookup(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted *key* in the values, returning *default* if any part of it does not exist.
        """

        value: Any = self._parameters
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return default
            value = value[part]
        return value

    @staticmethod
    def required(value: Any, message: str = "a required value is missing") -> Any:
        if isinstance(value, jinja2.Undefined) or value is None or value == "":
            raise jinja2.TemplateRuntimeError(message)
        return value

    @staticmethod
    def quote(value: Any) -> str:
        return json.dumps(str(value))

    @staticmethod
    def squote(value: Any) -> str:
        return "'" + str(value).replace("'", "''") + "'"

    @staticmethod
    def trimPrefix(value: str, prefix: str) -> str:
        return value[len(prefix) :] if prefix and value.startswith(prefix) else value

    @staticmethod
    def trimSuffix(value: str, suffix: str) -> str:
        return value[: -len(suffix)] if suffix and value.endswith(suffix) else value

    @staticmethod
    def trunc(value: str, length: int) -> str:
        if length < 0:
            return value[length:]
        return value[:length]

    @staticmethod
    def nindent(value: str, width: int) -> str:
        return "\n" + indent(str(value), " " * width)

    @staticmethod
    def toYaml(value: Any) -> str:
        return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")

    @staticmethod
    def fromYaml(value: str) -> Any:
        return yaml.safe_load(value)

    @staticmethod
    def toJson(value: Any) -> str:
        return json.dumps(value)

    @staticmethod
    def fromJson(value: str) -> Any:
        return json.loads(value)

    @staticmethod
    def b64enc(value: str) -> str:
        return base64.b64encode(str(value).encode("utf-8")).decode("ascii")

    @staticmethod
    def b64dec(value: str) -> str:
        return base64.b64decode(value.encode("ascii")).decode("utf-8")

    @staticmethod
    def sha256sum(value: str) -> str:
        return hashlib.sha256(str(value).encode("utf-8")).hexdigest()

    @staticmethod
    def ternary(condition: Any, true_value: Any, false_value: Any) -> Any:
        return true_value if condition else false_value

    @staticmethod
    def contains(value: str, substring: str) -> bool:
        return substring in value

    @staticmethod
    def hasKey(value: Mapping[str, Any], key: str) -> bool:
        return key in value

    @staticmethod
    def getenv(name: str, default: str = "") -> str:
        return os.environ.get(name, default)

    @staticmethod
    def randAlphaNum(length: int) -> str:
        alphabet = string.ascii_letters + string.digits
        return "".join(secrets.choice(alphabet) for _ in range(length))
