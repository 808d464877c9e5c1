# flashcards/ownership.py
"""
Ownership checks for generation sessions and their candidates.

A session that exists but belongs to someone else is reported exactly like a
missing one, so callers cannot probe for other users' ids.
"""
from __future__ import annotations

import uuid
from typing import Dict, Iterable, List

from django.db.models import Q

from .exceptions import NotFound
from .models import Flashcard, GenerationSession

SESSION_NOT_FOUND = "Session not found"


def resolve_session(session_id: uuid.UUID, user_id: str, *, lock: bool = False) -> GenerationSession:
    qs = GenerationSession.objects.filter(id=session_id, user_id=user_id)
    if lock:
        qs = qs.select_for_update()
    session = qs.first()
    if session is None:
        raise NotFound(SESSION_NOT_FOUND)
    return session


def resolve_candidates(
    session: GenerationSession,
    user_id: str,
    candidate_ids: Iterable[uuid.UUID],
    *,
    lock: bool = False,
) -> Dict[uuid.UUID, Flashcard]:
    """
    Load every requested card owned by `user_id` that is linked to `session`
    or was generated by it, keyed by id. Raises NotFound naming the ids that
    did not resolve, in request order.
    """
    wanted: List[uuid.UUID] = list(dict.fromkeys(candidate_ids))
    qs = Flashcard.objects.filter(id__in=wanted, user_id=user_id).filter(
        Q(ai_session=session) | Q(origin_session=session)
    )
    if lock:
        qs = qs.select_for_update()
    found = {card.id: card for card in qs}

    missing = [cid for cid in wanted if cid not in found]
    if missing:
        raise NotFound(
            f"Candidates not found: {', '.join(str(m) for m in missing)}",
            missing_ids=missing,
        )
    return found
