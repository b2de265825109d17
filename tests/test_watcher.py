from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, DirModifiedEvent

from elmtestfinder.discovery.watcher import ElmChangeHandler


def make_handler(tmp_path):
    calls = []
    handler = ElmChangeHandler(lambda: calls.append(1), root_path=str(tmp_path))
    return handler, calls


def test_elm_changes_trigger_callback(tmp_path):
    handler, calls = make_handler(tmp_path)

    handler.dispatch(FileModifiedEvent(str(tmp_path / "tests" / "Main.elm")))
    handler.dispatch(FileCreatedEvent(str(tmp_path / "elm.json")))

    assert len(calls) == 2


def test_unrelated_changes_are_ignored(tmp_path):
    handler, calls = make_handler(tmp_path)

    handler.dispatch(FileModifiedEvent(str(tmp_path / "README.md")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "elm-stuff" / "0.19.1" / "Main.elm")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / ".git" / "Main.elm")))
    handler.dispatch(DirModifiedEvent(str(tmp_path / "tests")))

    assert calls == []


def test_gitignored_files_are_ignored(tmp_path):
    (tmp_path / ".gitignore").write_text("generated/\n", encoding="utf-8")
    handler, calls = make_handler(tmp_path)

    handler.dispatch(FileModifiedEvent(str(tmp_path / "generated" / "Gen.elm")))

    assert calls == []


def test_rename_into_elm_file(tmp_path):
    handler, calls = make_handler(tmp_path)

    handler.dispatch(FileMovedEvent(str(tmp_path / "tests" / "Main.tmp"), str(tmp_path / "tests" / "Main.elm")))

    assert len(calls) == 1
