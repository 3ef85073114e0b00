from typing import Literal, overload
from pathlib import Path


@overload
def find_config_file(
    filenames: str | list[str], cwd: Path | None = None, required: Literal[False] = False
) -> Path | None: ...


@overload
def find_config_file(filenames: str | list[str], cwd: Path | None = None, required: Literal[True] = True) -> Path: ...


def find_config_file(filenames: str | list[str], cwd: Path | None = None, required: bool = True) -> Path | None:
    """
    Find the first of the given *filenames* in *cwd* or any of its parent directories. In each directory, the
    filenames are tried in order.
    """

    if isinstance(filenames, str):
        filenames = [filenames]
    if cwd is None:
        cwd = Path.cwd()

    for directory in [cwd] + list(cwd.parents):
        for filename in filenames:
            file = directory / filename
            if file.is_file():
                return file

    if required:
        raise FileNotFoundError(
            f"Could not find any of {filenames} in '{cwd}' or any of its parent directories."
        )

    return None
