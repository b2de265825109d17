import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from elmtestfinder.discovery.files import ELM_JSON, load_gitignore
from elmtestfinder.discovery.models import FinderConfig

logger = logging.getLogger(__name__)

WATCHED_EVENTS = ("created", "modified", "deleted", "moved")


class ElmChangeHandler(FileSystemEventHandler):
    """Calls on_change whenever an .elm file or elm.json under root_path changes."""

    def __init__(
        self,
        on_change: Callable[[], Any],
        root_path: str = ".",
        config: FinderConfig | None = None,
    ):
        self.on_change = on_change
        self.root_path = Path(root_path).resolve()
        self.config = config or FinderConfig()
        self.gitignore_spec = load_gitignore(self.root_path)

    def _should_ignore(self, file_path: str) -> bool:
        path = Path(file_path).resolve()

        if path.suffix != ".elm" and path.name != ELM_JSON:
            return True

        try:
            rel_path = path.relative_to(self.root_path)
        except ValueError:
            return True

        if any(p in self.config.skip_dirs or p.startswith(".") for p in rel_path.parts[:-1]):
            return True

        if self.gitignore_spec and self.gitignore_spec.match_file(rel_path.as_posix()):
            return True

        return False

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory or event.event_type not in WATCHED_EVENTS:
            return

        paths = [event.src_path]
        if event.event_type == "moved":
            paths.append(event.dest_path)
        if all(self._should_ignore(str(p)) for p in paths):
            return

        logger.info("File %s: %s", event.event_type, event.src_path)
        self.on_change()


def start_observer(
    path: str, callback: Callable[[], Any], config: FinderConfig | None = None
) -> Any:
    """Start the observer and return it (non-blocking)."""
    path_obj = Path(path).resolve()

    event_handler = ElmChangeHandler(callback, root_path=str(path_obj), config=config)
    observer = Observer()
    observer.schedule(event_handler, str(path_obj), recursive=True)
    observer.start()
    print(f"Watching {path_obj} for changes...")
    return observer


def start_watcher_blocking(path: str, callback: Callable[[], Any]):
    """Blocking version for CLI usage."""
    observer = start_observer(path, callback)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()
