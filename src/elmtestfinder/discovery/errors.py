"""
Errors raised while discovering Elm test modules.

Every error keeps the context it was raised with as attributes and renders
the user-facing diagnostic in ``render()``. The command line prints that
text verbatim, so the wording is part of the interface.
"""

from collections.abc import Sequence


class DiscoveryError(Exception):
    """Base class for everything that stops a test run before it starts."""

    def render(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()


class NoSourceRootError(DiscoveryError):
    """The file lies outside every source directory."""

    def __init__(self, file_path: str, is_package_project: bool):
        super().__init__(file_path)
        self.file_path = file_path
        self.is_package_project = is_package_project

    def render(self) -> str:
        if self.is_package_project:
            hint = "Move it to tests/ or src/ in your project root."
        else:
            hint = (
                "Move it to tests/ in your project root, or make sure it is covered by "
                '"source-directories" in your elm.json.'
            )
        return (
            f"This file:\n\n{self.file_path}\n\n"
            "…matches no source directory! Imports won't work then.\n\n"
            f"{hint}"
        )


class AmbiguousSourceRootError(DiscoveryError):
    """The file lies inside more than one source directory."""

    def __init__(self, file_path: str, source_dirs: Sequence[str]):
        super().__init__(file_path, list(source_dirs))
        self.file_path = file_path
        self.source_dirs = list(source_dirs)

    def render(self) -> str:
        dirs = "\n".join(self.source_dirs)
        return (
            f"This file:\n\n{self.file_path}\n\n"
            f"…matches more than one source directory:\n\n{dirs}\n\n"
            'Edit "source-directories" in your elm.json and try to make it so '
            "no source directory contains another source directory!"
        )


class InvalidModuleNameError(DiscoveryError):
    """The path relative to its source directory is not a valid module name."""

    def __init__(self, file_path: str, source_dir: str, module_name: str):
        super().__init__(file_path, source_dir, module_name)
        self.file_path = file_path
        self.source_dir = source_dir
        self.module_name = module_name

    def render(self) -> str:
        return (
            f"This file:\n\n{self.file_path}\n\n"
            f"…located in this directory:\n\n{self.source_dir}\n\n"
            "…is problematic. Trying to construct a module name from the parts "
            f"after the directory gives:\n\n{self.module_name}\n\n"
            "…but module names need to look like for example:\n\n"
            "Main\nHttp.Helpers\n\n"
            "Make sure that all parts start with an uppercase letter and don't "
            "contain any spaces or anything like that."
        )


class ExtractionFailedError(DiscoveryError):
    """Reading or parsing a test file failed. The original error is ``cause``."""

    def __init__(self, file_path: str, cause: BaseException):
        super().__init__(file_path, cause)
        self.file_path = file_path
        self.cause = cause

    def render(self) -> str:
        return f"This file:\n\n{self.file_path}\n\n…could not be read for tests:\n\n{self.cause}"


class MissingElmJsonError(DiscoveryError):
    def __init__(self, start_dir: str):
        super().__init__(start_dir)
        self.start_dir = start_dir

    def render(self) -> str:
        return f"Could not find elm.json in {self.start_dir} or any of its parent directories."


class InvalidElmJsonError(DiscoveryError):
    def __init__(self, path: str, reason: str):
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def render(self) -> str:
        return f"Could not read {self.path}:\n\n{self.reason}"


class NoTestsFoundError(DiscoveryError):
    def __init__(self, file_paths: Sequence[str]):
        super().__init__(list(file_paths))
        self.file_paths = list(file_paths)

    def render(self) -> str:
        return f"No .elm files found for: {', '.join(self.file_paths)}"
