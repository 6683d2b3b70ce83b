"""
Reconciler

Folds an analyzed import into the stored sessions and templates.

MERGE keys records by id in an explicit OrderedDict: existing records first,
then imported ones, so an imported record replaces the stored record with the
same id in place and unrelated records survive. REPLACE swaps a whole
category, but only when the import actually carries records of that category.
"""

import logging
from collections import OrderedDict
from typing import List, NamedTuple, Sequence, TypeVar, Union

from trelog_api.backup.models import ImportPreview, MergePolicy
from trelog_api.models import Session, Template

logger = logging.getLogger(__name__)

R = TypeVar("R", Session, Template)


class Reconciliation(NamedTuple):
    sessions: List[Session]
    templates: List[Template]


def merge_by_id(existing: Sequence[R], incoming: Sequence[R]) -> List[R]:
    """Union of both sequences keyed by id; incoming wins, first position is kept."""
    by_id: "OrderedDict[str, R]" = OrderedDict()
    for record in existing:
        by_id[record.id] = record
    for record in incoming:
        by_id[record.id] = record
    return list(by_id.values())


def reconcile(
    existing_sessions: Sequence[Session],
    existing_templates: Sequence[Template],
    preview: ImportPreview,
    policy: Union[MergePolicy, str],
) -> Reconciliation:
    """
    Compute the collections to persist after an import.

    The inputs are never modified; new lists are always returned. An import
    that has no records of a category leaves that category as it was, under
    either policy.
    """
    policy = MergePolicy(policy)

    if policy is MergePolicy.MERGE:
        sessions = merge_by_id(existing_sessions, preview.sessions)
        if preview.templates:
            templates = merge_by_id(existing_templates, preview.templates)
        else:
            templates = list(existing_templates)
        return Reconciliation(sessions=sessions, templates=templates)

    if preview.is_empty:
        logger.warning("Replace import carries no sessions and no templates; nothing changed")

    sessions = list(preview.sessions) if preview.sessions else list(existing_sessions)
    templates = list(preview.templates) if preview.templates else list(existing_templates)
    return Reconciliation(sessions=sessions, templates=templates)
