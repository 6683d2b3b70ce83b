"""Text search and the "only sessions with sets" filter over session history."""
from typing import Any, Iterable, List

from trelog_api.models import ExerciseBlock, Session


def _normalize(text: Any) -> str:
    return "" if text is None else str(text).lower()


def matches_exercise(exercise: ExerciseBlock, query: str) -> bool:
    """Substring match on name, variant, note and every set note."""
    q = _normalize(query)
    haystack = " ".join(
        [_normalize(exercise.name), _normalize(exercise.variant), _normalize(exercise.note)]
        + [_normalize(st.note) for st in exercise.sets]
    )
    return q in haystack


def matches_session(session: Session, query: str) -> bool:
    """
    Case-insensitive substring match against a session.

    Session title, notes and date plus each exercise's name, variant and note
    are checked first; set notes are only reached through the per-exercise
    match. An empty query matches everything.
    """
    q = _normalize(query)
    if not q:
        return True

    base = " ".join(
        [_normalize(session.title), _normalize(session.notes), _normalize(session.date)]
        + [
            f"{_normalize(ex.name)} {_normalize(ex.variant)} {_normalize(ex.note)}"
            for ex in session.exercises
        ]
    )
    if q in base:
        return True
    return any(matches_exercise(ex, q) for ex in session.exercises)


def has_sets(session: Session) -> bool:
    return any(ex.sets for ex in session.exercises)


def filter_sessions(
    sessions: Iterable[Session],
    query: str = "",
    only_with_sets: bool = False,
) -> List[Session]:
    """Apply the text query and the set filter together, keeping order."""
    q = (query or "").strip().lower()
    return [
        s for s in sessions
        if (not only_with_sets or has_sets(s)) and matches_session(s, q)
    ]
