"""
Reading and merging of values files. Values files are YAML mappings that are merged in the order they are given, with
later files overriding earlier ones field by field.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from kubeplate.errors import DecodeError
from kubeplate.tools.types import Values


def read_values(path: Path) -> Values:
    """
    Read a single values file. An empty file is treated as an empty mapping.

    Raises:
        DecodeError: If the file can not be read, is not valid YAML or does not contain a mapping.
    """

    try:
        content = path.read_text()
    except OSError as exc:
        raise DecodeError(f"unable to read values file: {exc.strerror or exc}", str(path)) from exc

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise DecodeError(f"unable to decode the values content: {exc}", str(path)) from exc

    if data is None:
        return Values({})
    if not isinstance(data, dict):
        raise DecodeError(f"expected a mapping at the top level, got {type(data).__name__}", str(path))
    return Values(data)


def merge_values(base: dict[str, Any], override: dict[str, Any], recurse_arrays: bool = False) -> dict[str, Any]:
    """
    Merge *override* into *base* and return *base*. Mappings present on both sides are merged recursively. Lists
    present on both sides are replaced, or concatenated if *recurse_arrays* is enabled. In every other case, including
    a type mismatch between the two sides, the value from *override* wins.
    """

    for key, value in override.items():
        current = base.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merge_values(current, value, recurse_arrays)
        elif recurse_arrays and isinstance(value, list) and isinstance(current, list):
            base[key] = current + value
        else:
            base[key] = value
    return base


def combine_values(files: Iterable[Path], recurse_arrays: bool = False) -> Values:
    """
    Read and merge the given values files in order.
    """

    result = Values({})
    for file in files:
        logger.debug("Merging values from '{}'", file)
        merge_values(result, read_values(file), recurse_arrays)
    return result
