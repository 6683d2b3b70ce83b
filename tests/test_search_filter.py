"""Unit tests for the session search filter."""
from trelog_api.models import ExerciseBlock, SetEntry
from trelog_api.services.search_filter import filter_sessions, has_sets, matches_session

from conftest import bench_session, make_session


class TestSearchFilter:
    """Test cases for filter_sessions()."""

    def test_exercise_name_case_insensitive(self):
        sessions = [bench_session("a"), make_session("b", title="Run")]
        assert [s.id for s in filter_sessions(sessions, "bench")] == ["a"]
        assert [s.id for s in filter_sessions(sessions, "BENCH PRESS")] == ["a"]

    def test_empty_query_matches_all(self):
        sessions = [bench_session("a"), make_session("b")]
        assert filter_sessions(sessions, "") == sessions
        assert filter_sessions(sessions, "   ") == sessions

    def test_matches_title_notes_and_date(self):
        session = make_session(title="Leg Day", notes="Felt strong", date="2024-03-05")
        assert matches_session(session, "leg")
        assert matches_session(session, "strong")
        assert matches_session(session, "2024-03")
        assert not matches_session(session, "upper")

    def test_matches_set_note(self):
        session = make_session(exercises=[
            ExerciseBlock(id="e", name="Deadlift", sets=[SetEntry(id="x", note="Belt on")])
        ])
        assert matches_session(session, "belt")

    def test_only_with_sets(self):
        sessions = [bench_session("a"), make_session("b", title="Rest")]
        assert [s.id for s in filter_sessions(sessions, only_with_sets=True)] == ["a"]
        assert filter_sessions(sessions, "rest", only_with_sets=True) == []

    def test_has_sets_ignores_empty_exercises(self):
        session = make_session(exercises=[ExerciseBlock(id="e", name="Plank")])
        assert not has_sets(session)

    def test_order_preserved(self):
        sessions = [bench_session("c"), bench_session("a"), bench_session("b")]
        assert [s.id for s in filter_sessions(sessions, "press")] == ["c", "a", "b"]
