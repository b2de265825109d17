import asyncio
import errno
import json
import logging
import os
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import pathspec
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from elmtestfinder.discovery.errors import (
    InvalidElmJsonError,
    MissingElmJsonError,
    NoTestsFoundError,
)
from elmtestfinder.discovery.models import ElmJson, FinderConfig

logger = logging.getLogger(__name__)

ELM_JSON = "elm.json"
_OUT_OF_DESCRIPTORS = {errno.EMFILE, errno.ENFILE}


def _is_out_of_descriptors(error: BaseException) -> bool:
    return isinstance(error, OSError) and error.errno in _OUT_OF_DESCRIPTORS


class ResilientFileOpener:
    """
    Opens many files concurrently without running out of file descriptors.

    At most ``config.max_open_files`` streams are open at once. If the OS
    still reports EMFILE/ENFILE (other processes hold descriptors too), the
    open is retried with backoff. Any other OSError propagates immediately.
    """

    def __init__(self, config: FinderConfig | None = None):
        self.config = config or FinderConfig()
        self._slots = asyncio.Semaphore(self.config.max_open_files)

    @asynccontextmanager
    async def __call__(self, file_path: str) -> AsyncIterator[BinaryIO]:
        async with self._slots:
            stream = await self._open(file_path)
            try:
                yield stream
            finally:
                stream.close()

    async def _open(self, file_path: str) -> BinaryIO:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.open_retry_attempts),
            wait=wait_random_exponential(
                multiplier=self.config.open_retry_backoff,
                max=self.config.open_retry_max_backoff,
            ),
            retry=retry_if_exception(_is_out_of_descriptors),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await asyncio.to_thread(open, file_path, "rb")
        raise RuntimeError("Retrying loop exited unexpectedly")


@dataclass(frozen=True)
class ElmProject:
    root: Path
    elm_json: ElmJson

    @property
    def is_package(self) -> bool:
        return self.elm_json.type == "package"

    @property
    def source_dirs(self) -> list[str]:
        """Absolute source directories, tests/ included."""
        if self.is_package:
            relative = ["src", "tests"]
        else:
            relative = [*self.elm_json.source_directories, "tests"]

        dirs: list[str] = []
        for rel in relative:
            absolute = os.path.normpath(os.path.join(self.root, rel))
            if absolute not in dirs:
                dirs.append(absolute)
        return dirs


def find_nearest_elm_json(start: Path) -> Path:
    """Search start and its parents for elm.json."""
    start = start.resolve()
    search_dir = start if start.is_dir() else start.parent

    for parent in [search_dir, *list(search_dir.parents)]:
        candidate = parent / ELM_JSON
        if candidate.is_file():
            return candidate

    raise MissingElmJsonError(str(search_dir))


def load_project(elm_json_path: Path) -> ElmProject:
    try:
        with open(elm_json_path, encoding="utf-8") as f:
            raw = json.load(f)
        elm_json = ElmJson.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise InvalidElmJsonError(str(elm_json_path), str(e)) from e

    return ElmProject(root=elm_json_path.resolve().parent, elm_json=elm_json)


def load_gitignore(root_path: Path) -> pathspec.PathSpec | None:
    """Load .gitignore from the root path if it exists."""
    gitignore_path = root_path / ".gitignore"
    if not gitignore_path.is_file():
        return None
    try:
        with open(gitignore_path, encoding="utf-8") as f:
            return pathspec.PathSpec.from_lines("gitwildmatch", f)
    except OSError as e:
        logger.warning("Failed to load %s: %s", gitignore_path, e)
        return None


def _is_ignored(
    path: Path, root: Path, spec: pathspec.PathSpec | None, is_dir: bool = False
) -> bool:
    if spec is None:
        return False
    try:
        rel_path = path.relative_to(root).as_posix()
    except ValueError:
        return False
    # Patterns like `generated/` only match directory paths with a trailing slash
    return spec.match_file(rel_path + "/" if is_dir else rel_path)


def gather_test_files(
    file_paths: Sequence[str],
    root: Path,
    config: FinderConfig | None = None,
) -> list[str]:
    """
    Expand command line arguments into absolute paths of .elm files.

    Directories are searched recursively. Explicitly named files are kept
    even when .gitignore would skip them.
    """
    config = config or FinderConfig()
    root = root.resolve()
    arguments = list(file_paths) or [config.default_test_dir]
    spec = load_gitignore(root)

    found: set[str] = set()
    for argument in arguments:
        target = Path(argument)
        if not target.is_absolute():
            target = root / target
        target = target.resolve()

        if target.is_file():
            if target.suffix == ".elm":
                found.add(str(target))
            continue

        if not target.is_dir():
            logger.debug("Skipping %s: not found", target)
            continue

        for current, dirs, files in os.walk(target):
            current_root = Path(current)
            dirs[:] = [
                d
                for d in dirs
                if d not in config.skip_dirs
                and not d.startswith(".")
                and not _is_ignored(current_root / d, root, spec, is_dir=True)
            ]
            for file in files:
                full_path = current_root / file
                if full_path.suffix != ".elm" or _is_ignored(full_path, root, spec):
                    continue
                found.add(str(full_path))

    if not found:
        raise NoTestsFoundError(arguments)

    return sorted(found)
