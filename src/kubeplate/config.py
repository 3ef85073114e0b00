from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from kubeplate.errors import ConfigError
from kubeplate.kube.registry import TypeRegistry
from kubeplate.manifests import GroupVersionKind
from kubeplate.pipeline import ApplyOptions
from kubeplate.templating import DEFAULT_MAX_PASSES
from kubeplate.tools.fs import find_config_file


@dataclass
class TypeEntry:
    """
    A resource type to add to the local type registry.
    """

    api_version: str
    kind: str


@dataclass
class Project:
    """
    Configuration for a kubeplate project that is stored in a `kubeplate.yaml` file.
    """

    max_render_passes: int = DEFAULT_MAX_PASSES
    """ The maximum number of rendering passes before a template is considered to not converge. """

    strict_undefined: bool = True
    """ Whether referencing an undefined value in a template is an error. """

    recurse_arrays: bool = False
    """ Concatenate lists when merging values files instead of replacing them. """

    preserve_owner_references: bool = False
    """ Keep the `ownerReferences` of existing objects when updating them. """

    types: list[TypeEntry] = field(default_factory=list)
    """
    Additional resource types to register in the local type registry. Existing objects of a kind can only be updated
    if the kind is registered.
    """

    def apply_options(
        self,
        *,
        max_render_passes: int | None = None,
        recurse_arrays: bool | None = None,
        preserve_owner_references: bool | None = None,
    ) -> ApplyOptions:
        """
        Return the apply options of this project. Arguments that are not `None` take precedence.
        """

        return ApplyOptions(
            max_render_passes=self.max_render_passes if max_render_passes is None else max_render_passes,
            strict_undefined=self.strict_undefined,
            recurse_arrays=self.recurse_arrays if recurse_arrays is None else recurse_arrays,
            preserve_owner_references=(
                self.preserve_owner_references if preserve_owner_references is None else preserve_owner_references
            ),
        )

    def type_registry(self) -> TypeRegistry:
        """
        Return the default type registry, extended by the types of this project.
        """

        return TypeRegistry.default().with_types(
            GroupVersionKind.from_api_version(entry.api_version, entry.kind) for entry in self.types
        )


@dataclass
class ProjectConfig:
    """
    Wrapper for the project configuration file.
    """

    FILENAMES = ["kubeplate.yaml", "kubeplate.yml"]

    file: Path | None
    config: Project

    @staticmethod
    def load(file: Path | None = None, /, cwd: Path | None = None) -> "ProjectConfig":
        """
        Load the project configuration from the given file, or from the first configuration file found in *cwd* or
        its parents. If there is no configuration file, the default configuration is returned.

        Raises:
            ConfigError: If the configuration file can not be read or is invalid.
        """

        from databind.core import ConversionError
        from databind.json import load as deser
        from yaml import YAMLError, safe_load

        if file is None:
            file = find_config_file(ProjectConfig.FILENAMES, cwd, required=False)
        if file is None:
            return ProjectConfig(None, Project())

        logger.debug("Loading project configuration from '{}'", file)
        try:
            project = deser(safe_load(file.read_text()) or {}, Project, filename=str(file))
        except (OSError, YAMLError, ConversionError) as exc:
            raise ConfigError(f"invalid project configuration '{file}': {exc}") from exc

        if project.max_render_passes < 1:
            raise ConfigError(f"invalid project configuration '{file}': max_render_passes must be at least 1")

        return ProjectConfig(file, project)
