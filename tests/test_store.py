from datetime import datetime

import pytest

from worklog_engine.errors import CorruptLog, LockContention, OverlappingEvent
from worklog_engine.locks import exclusive_lock, shared_lock
from worklog_engine.schema import ClosedEvent, Note, OpenEvent, VacationInterval
from worklog_engine.store import LogStore, VacationStore


def _at(hour, minute=0, day=13):
    return datetime(2024, 3, day, hour, minute)


def test_append_and_close_persist_lines(tmp_path):
    store = LogStore(tmp_path / "log")
    store.append(OpenEvent(_at(9), {"a"}, "working"))
    store.append(Note(_at(9, 30), set(), "remark"))
    store.close(_at(10))
    assert (tmp_path / "log").read_text(encoding="utf-8") == (
        "2024  3 13  9  0  0:a:working\n"
        "2024  3 13  9 30  0<NOTE>:remark\n"
        "2024  3 13 10  0  0:DONE\n"
    )
    log = store.snapshot()
    assert log.events == (ClosedEvent(_at(9), _at(10), {"a"}, "working"),)
    store.validate()


def test_append_after_unterminated_last_line(tmp_path):
    path = tmp_path / "log"
    path.write_text("2024  3 13  9  0  0:a:working", encoding="utf-8")
    LogStore(path).close(_at(10))
    assert path.read_text(encoding="utf-8").splitlines() == [
        "2024  3 13  9  0  0:a:working",
        "2024  3 13 10  0  0:DONE",
    ]


def test_failed_append_leaves_file_untouched(tmp_path):
    store = LogStore(tmp_path / "log")
    store.append(ClosedEvent(_at(9), _at(10), set(), "done"))
    before = (tmp_path / "log").read_text(encoding="utf-8")
    with pytest.raises(OverlappingEvent):
        store.append(ClosedEvent(_at(9, 30), _at(11), set(), "overlap"))
    assert (tmp_path / "log").read_text(encoding="utf-8") == before


def test_resume_reopens_last_event(tmp_path):
    store = LogStore(tmp_path / "log")
    store.append(ClosedEvent(_at(9), _at(10), {"a"}, "coding"))
    resumed = store.resume(_at(11))
    assert resumed == OpenEvent(_at(11), {"a"}, "coding")
    assert store.snapshot().open_event == resumed


def test_truncate_rewrites_file(tmp_path):
    path = tmp_path / "log"
    path.write_text(
        "# header\n"
        "2024 3 12 9 0 0:a:old\n"
        "2024 3 12 10 0 0:DONE\n"
        "2024 3 13 9 0 0:b:new\n"
        "2024 3 13 10 0 0:DONE\n",
        encoding="utf-8",
    )
    store = LogStore(path)
    removed = store.truncate(_at(0))
    assert [entry.description for entry in removed] == ["old"]
    assert path.read_text(encoding="utf-8") == "2024  3 13  9  0  0:b:new\n2024  3 13 10  0  0:DONE\n"
    assert store.truncate(_at(0)) == []
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith("log.") and p.name != "log.lock"] == []


def test_truncate_refuses_corrupt_log(tmp_path):
    path = tmp_path / "log"
    text = "2024 3 13 10 0 0:a:one\n2024 3 13 9 0 0:DONE\n"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(CorruptLog):
        LogStore(path).truncate(_at(12))
    assert path.read_text(encoding="utf-8") == text


def test_missing_log_is_empty(tmp_path):
    log = LogStore(tmp_path / "log").snapshot()
    assert len(log) == 0


def test_lock_contention(tmp_path):
    store = LogStore(tmp_path / "log", lock_timeout=0.1)
    with exclusive_lock(store.lock_path):
        with pytest.raises(LockContention) as excinfo:
            store.append(OpenEvent(_at(9), set(), "blocked"))
        with pytest.raises(LockContention):
            store.snapshot()
    assert excinfo.value.retryable
    store.append(OpenEvent(_at(9), set(), "free again"))


def test_shared_locks_coexist(tmp_path):
    lock_path = tmp_path / "log.lock"
    with shared_lock(lock_path, timeout=0.1):
        with shared_lock(lock_path, timeout=0.1):
            pass


def test_vacation_store(tmp_path):
    store = VacationStore(tmp_path / "vacation")
    assert store.load() == []
    vacation = VacationInterval(datetime(2024, 7, 1), datetime(2024, 7, 8), "summer", frozenset({"trip"}))
    store.add(vacation)
    assert store.load() == [vacation]


def test_descriptions_with_unicode_line_breaks_stay_one_record(tmp_path):
    store = LogStore(tmp_path / "log")
    first = ClosedEvent(_at(9), _at(10), {"a b"}, "page\x0cbreak")
    second = ClosedEvent(_at(11), _at(12), set(), "next\x85line\x1cgroup")
    store.append(first)
    store.append(second)
    assert store.snapshot().events == (first, second)
    store.append(OpenEvent(_at(13), set(), "later"))
    store.close(_at(14))
    assert len(store.snapshot().events) == 3
    store.validate()
