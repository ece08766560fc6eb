from datetime import datetime

from worklog_engine.filters import TagFilter
from worklog_engine.schema import ClosedEvent, Note

START = datetime(2024, 3, 13, 9)
END = datetime(2024, 3, 13, 10)


def _event(tags, description="email"):
    return ClosedEvent(START, END, tags, description)


def test_empty_filter_matches_everything():
    tag_filter = TagFilter()
    assert tag_filter.empty
    assert tag_filter.matches(_event(set()))
    assert tag_filter.matches(Note(START, {"x"}, "remark"))


def test_required_and_any_of_tags():
    assert TagFilter(all_tags={"a", "b"}).matches(_event({"a", "b", "c"}))
    assert not TagFilter(all_tags={"a", "b"}).matches(_event({"a"}))
    assert TagFilter(some_tags={"a", "x"}).matches(_event({"x"}))
    assert not TagFilter(some_tags={"a"}).matches(_event(set()))


def test_forbidden_tags_keep_untagged_entries():
    tag_filter = TagFilter(no_tags={"b"})
    assert not tag_filter.matches(_event({"a", "b"}))
    assert tag_filter.matches(_event({"a"}))
    assert tag_filter.matches(_event(set()))


def test_untagged_mode():
    tag_filter = TagFilter(untagged=True)
    assert tag_filter.matches(_event(set()))
    assert not tag_filter.matches(_event({"a"}))


def test_description_patterns():
    assert TagFilter(patterns=["^e"]).matches(_event(set(), "email"))
    assert not TagFilter(patterns=["^e"]).matches(_event(set(), "filing"))
    assert not TagFilter(no_patterns=["fil"]).matches(_event({"a"}, "filing"))
    assert not TagFilter(patterns=["mail"]).empty
