"""Editing of the current draft session and session templates.

Every function takes a frozen record and returns a new one; nothing is edited
in place, so history snapshots handed to the aggregator or reconciler never
change underneath them.
"""
import logging
from datetime import date
from typing import List, Literal, Optional

from trelog_api.backup.migrations import new_id
from trelog_api.config import settings
from trelog_api.models import ExerciseBlock, Session, SetEntry, Template

logger = logging.getLogger(__name__)

UNTITLED_SESSION = "Untitled session"
UNTITLED_TEMPLATE = "Untitled template"

ApplyMode = Literal["replace", "append"]


class EmptyTemplateError(ValueError):
    """Raised when a session has nothing worth saving as a template."""


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def new_session(today: Optional[date] = None) -> Session:
    """Blank draft dated today."""
    today = today or date.today()
    return Session(
        id=new_id(),
        date=today.isoformat(),
        bodyweight_kg=settings.DEFAULT_BODYWEIGHT_KG,
    )


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------

def add_exercise(session: Session, name: str = "") -> Session:
    block = ExerciseBlock(id=new_id(), name=name)
    return session.model_copy(update={"exercises": [*session.exercises, block]})


def update_exercise(session: Session, block: ExerciseBlock) -> Session:
    exercises = [block if ex.id == block.id else ex for ex in session.exercises]
    return session.model_copy(update={"exercises": exercises})


def remove_exercise(session: Session, exercise_id: str) -> Session:
    exercises = [ex for ex in session.exercises if ex.id != exercise_id]
    return session.model_copy(update={"exercises": exercises})


# ---------------------------------------------------------------------------
# Sets
# ---------------------------------------------------------------------------

def add_set(block: ExerciseBlock, copy_from_last: bool = False) -> ExerciseBlock:
    """Append a set; optionally a copy of the last one with a new id."""
    number = len(block.sets) + 1
    if copy_from_last and block.sets:
        entry = block.sets[-1].model_copy(update={"id": new_id(), "set_number": number})
    else:
        entry = SetEntry(id=new_id(), set_number=number)
    return block.model_copy(update={"sets": [*block.sets, entry]})


def update_set(block: ExerciseBlock, entry: SetEntry) -> ExerciseBlock:
    sets = [entry if st.id == entry.id else st for st in block.sets]
    return block.model_copy(update={"sets": sets})


def remove_set(block: ExerciseBlock, set_id: str) -> ExerciseBlock:
    """Drop a set and renumber the remaining ones 1..N."""
    sets = [
        st.model_copy(update={"set_number": i + 1})
        for i, st in enumerate(st for st in block.sets if st.id != set_id)
    ]
    return block.model_copy(update={"sets": sets})


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------

def can_save(session: Session) -> bool:
    """
    A session is worth saving when it has a set with a number in it, or any
    meaningful input at all: title, notes, exercise name/variant/note, or a set.
    Interval and bodyweight-only sessions are allowed.
    """
    has_numeric_set = any(
        st.weight_kg is not None or st.reps is not None
        for ex in session.exercises
        for st in ex.sets
    )
    has_meaning = (
        _has_text(session.title)
        or _has_text(session.notes)
        or any(
            _has_text(ex.name) or _has_text(ex.variant) or _has_text(ex.note) or ex.sets
            for ex in session.exercises
        )
    )
    return has_numeric_set or has_meaning


def finalize_session(session: Session) -> Session:
    """Session as it goes into history: a blank title gets a placeholder."""
    title = session.title.strip() or UNTITLED_SESSION
    return session.model_copy(update={"title": title})


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def clone_exercise_block(block: ExerciseBlock, index_offset: int = 0) -> ExerciseBlock:
    """Deep copy with fresh ids for the block and each set, sets renumbered."""
    return ExerciseBlock(
        id=new_id(),
        name=block.name,
        variant=block.variant,
        note=block.note,
        sets=[
            st.model_copy(update={"id": new_id(), "set_number": i + 1 + index_offset})
            for i, st in enumerate(block.sets)
        ],
    )


def template_from_session(session: Session, name: str = "") -> Template:
    """
    Save the session's exercise list as a reusable template.

    Raises:
        EmptyTemplateError: the session has no title, notes or exercises
    """
    if not (_has_text(session.notes) or session.exercises or _has_text(session.title)):
        raise EmptyTemplateError("Nothing to save as a template; add exercises or notes first")

    template_name = name.strip() or session.title.strip() or UNTITLED_TEMPLATE
    return Template(
        id=new_id(),
        name=template_name,
        notes=session.notes,
        exercises=[clone_exercise_block(ex) for ex in session.exercises],
    )


def apply_template(session: Session, template: Template, mode: ApplyMode = "replace") -> Session:
    """
    Copy a template's exercises into a draft.

    ``replace`` swaps the exercise list and fills a blank title/notes from the
    template; ``append`` adds the template's exercises after the existing ones.
    """
    cloned: List[ExerciseBlock] = [clone_exercise_block(ex) for ex in template.exercises]

    if mode == "append":
        return session.model_copy(update={"exercises": [*session.exercises, *cloned]})
    if mode != "replace":
        raise ValueError(f"Unknown template apply mode: {mode}")

    return session.model_copy(update={
        "title": session.title if _has_text(session.title) else template.name,
        "notes": session.notes if _has_text(session.notes) else template.notes,
        "exercises": cloned,
    })
