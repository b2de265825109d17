import logging
import os
import re
from collections.abc import Sequence

from elmtestfinder.discovery.errors import (
    AmbiguousSourceRootError,
    InvalidModuleNameError,
    NoSourceRootError,
)

logger = logging.getLogger(__name__)

ELM_EXTENSION = re.compile(r"\.elm$")
_NAME_TAIL = re.compile(r"\w*")


def is_upper_name(name: str) -> bool:
    """True for names like ``Main`` or ``Http2_Helpers``: uppercase, then letters, digits or _."""
    return bool(name) and name[0].isupper() and _NAME_TAIL.fullmatch(name[1:]) is not None


def matching_source_dirs(
    file_path: str, source_dirs: Sequence[str], sep: str = os.sep
) -> list[str]:
    """Return the source dirs that contain file_path, matching whole path segments only."""
    matches = []
    for source_dir in source_dirs:
        prefix = source_dir.rstrip(sep) or sep
        if prefix != sep:
            prefix += sep
        if file_path.startswith(prefix):
            matches.append(source_dir)
    return matches


def module_name_parts(file_path: str, source_dir: str) -> list[str]:
    """Split the path after source_dir into module name parts, dropping the .elm extension."""
    relative = os.path.relpath(file_path, source_dir)
    return ELM_EXTENSION.sub("", relative).split(os.sep)


class ModuleResolver:
    """Resolves Elm test file paths to module names under a fixed set of source directories."""

    def __init__(self, source_dirs: Sequence[str], is_package_project: bool = False):
        self.source_dirs = list(source_dirs)
        self.is_package_project = is_package_project

    def source_dir_for(self, file_path: str) -> str:
        """Find the single source directory a file belongs to."""
        matches = matching_source_dirs(file_path, self.source_dirs)

        # Elm can only import the file if exactly one source directory covers it
        if not matches:
            raise NoSourceRootError(file_path, self.is_package_project)
        if len(matches) > 1:
            raise AmbiguousSourceRootError(file_path, matches)
        return matches[0]

    def get_module_name(self, file_path: str) -> str:
        """Derive the module name from the path alone, without reading the file."""
        source_dir = self.source_dir_for(file_path)
        parts = module_name_parts(file_path, source_dir)
        module_name = ".".join(parts)

        if not all(is_upper_name(part) for part in parts):
            raise InvalidModuleNameError(file_path, source_dir, module_name)

        logger.debug("%s -> %s (source dir %s)", file_path, module_name, source_dir)
        return module_name
