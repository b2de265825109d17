import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from elmtestfinder.discovery.errors import DiscoveryError, ExtractionFailedError
from elmtestfinder.discovery.files import (
    ResilientFileOpener,
    find_nearest_elm_json,
    gather_test_files,
    load_project,
)
from elmtestfinder.discovery.models import FinderConfig, ResolvedModule
from elmtestfinder.discovery.parser import ElmParser, FileOpener, NameExtractor
from elmtestfinder.discovery.resolver import ModuleResolver

logger = logging.getLogger(__name__)


async def find_tests(
    test_file_paths: Sequence[str],
    source_dirs: Sequence[str],
    is_package_project: bool,
    *,
    extractor: NameExtractor | None = None,
    open_file: FileOpener | None = None,
    config: FinderConfig | None = None,
) -> list[ResolvedModule]:
    """
    Resolve every test file to its module name and possibly-test names.

    Results are in the order of test_file_paths. The first problem with any
    file fails the whole batch; nothing is returned for the other files.
    """
    resolver = ModuleResolver(source_dirs, is_package_project)

    # Path problems are reported before any file is opened
    module_names = [resolver.get_module_name(file_path) for file_path in test_file_paths]

    if extractor is None:
        extractor = ElmParser()
    if open_file is None:
        open_file = ResilientFileOpener(config)

    tasks = [
        asyncio.ensure_future(_extract(extractor, file_path, open_file))
        for file_path in test_file_paths
    ]
    try:
        possibly_tests = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

    return [
        ResolvedModule(module_name=module_name, possibly_tests=names)
        for module_name, names in zip(module_names, possibly_tests)
    ]


async def _extract(extractor: NameExtractor, file_path: str, open_file: FileOpener) -> list[str]:
    try:
        return list(await extractor.extract(file_path, open_file))
    except DiscoveryError:
        raise
    except Exception as e:
        raise ExtractionFailedError(file_path, e) from e


def run(
    file_paths: Sequence[str],
    cwd: Path | None = None,
    config: FinderConfig | None = None,
) -> list[ResolvedModule]:
    """Find the project around cwd, gather its test files and resolve them."""
    config = config or FinderConfig()
    project = load_project(find_nearest_elm_json(cwd or Path.cwd()))
    test_files = gather_test_files(file_paths, project.root, config)
    logger.debug("Resolving %d test files under %s", len(test_files), project.root)

    return asyncio.run(
        find_tests(test_files, project.source_dirs, project.is_package, config=config)
    )


def format_modules(modules: Sequence[ResolvedModule], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([m.model_dump(by_alias=True) for m in modules], indent=2)
    return "\n".join(f"{m.module_name}: {', '.join(m.possibly_tests)}" for m in modules)


def report(file_paths: Sequence[str], cwd: Path | None = None, as_json: bool = False) -> bool:
    """Print the resolved modules, or the error. Returns False on error."""
    try:
        modules = run(file_paths, cwd)
    except DiscoveryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return False

    print(format_modules(modules, as_json))
    return True


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="elm-test-finder",
        description="Resolve Elm test files to module names and list their possible tests.",
    )
    parser.add_argument("paths", nargs="*", help="Test files or directories (default: tests/)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--watch", action="store_true", help="Re-run when .elm files change")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None):
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    if args.watch:
        from elmtestfinder.discovery.watcher import start_watcher_blocking

        try:
            root = find_nearest_elm_json(Path.cwd()).parent
        except DiscoveryError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        report(args.paths, root, args.json)
        start_watcher_blocking(str(root), lambda: report(args.paths, root, args.json))
        return

    if not report(args.paths, as_json=args.json):
        sys.exit(1)


if __name__ == "__main__":
    main()
