# flashcards/services.py
from __future__ import annotations

import datetime as dt
import hashlib
import logging
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from django.db import transaction
from django.utils import timezone

from .conf import get_setting
from .exceptions import GenerationFailed, NotFound
from .generation import GenerationError, GenerationResult
from .models import EventLog, EventType, Flashcard, GenerationSession, Source
from .ownership import resolve_session

logger = logging.getLogger(__name__)


def hash_input_text(text: str) -> str:
    """SHA-256 hex digest of the trimmed input, used for duplicate detection."""
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()


def log_event(user_id: str, event_type: str, source: str, *, session=None, flashcard=None) -> EventLog:
    return EventLog.objects.create(
        user_id=user_id,
        event_type=event_type,
        event_source=source,
        ai_session=session,
        flashcard=flashcard,
    )


def _pending_for(user_id: str):
    """Candidates still under review: linked to a session and not soft-deleted."""
    return Flashcard.objects.filter(
        user_id=user_id, ai_session__isnull=False, deleted_at__isnull=True
    ).order_by("created_at")


def _active_for(user_id: str):
    return Flashcard.objects.filter(user_id=user_id, ai_session__isnull=True, deleted_at__isnull=True)


# ---------- generation sessions ----------

def create_generation_session(
    user_id: str,
    input_text: str,
    model: str,
    generate: Callable[[str, str], GenerationResult],
) -> Tuple[GenerationSession, List[Flashcard], str]:
    """
    Create a session, ask `generate` for candidates and store them linked to it.

    On generator failure the session is kept (with zero candidates), a
    `generation_session_failed` event is appended and GenerationFailed is raised.
    """
    session = GenerationSession.objects.create(
        user_id=user_id, input_text=input_text, model=model, generation_duration=0
    )

    try:
        result = generate(input_text, model)
    except GenerationError as e:
        logger.warning("generation failed: session=%s model=%s error=%s", session.id, model, e)
        log_event(user_id, EventType.GENERATION_SESSION_FAILED, Source.AI, session=session)
        raise GenerationFailed() from e

    with transaction.atomic():
        cards = [
            Flashcard.objects.create(
                user_id=user_id,
                ai_session=session,
                origin_session=session,
                source=Source.AI,
                front=c["front"],
                back=c["back"],
                prompt=c.get("prompt"),
                model=model,
            )
            for c in result.candidates
        ]
        session.generation_duration = result.duration_ms
        session.save(update_fields=["generation_duration", "updated_at"])
        log_event(user_id, EventType.GENERATION_SESSION_CREATED, Source.AI, session=session)

    return session, cards, hash_input_text(input_text)


def list_session_candidates(session_id: uuid.UUID, user_id: str) -> List[Flashcard]:
    session = resolve_session(session_id, user_id)
    return list(_pending_for(user_id).filter(ai_session=session))


# ---------- pending / orphaned candidates ----------

def list_pending_candidates(user_id: str, exclude_session_id: Optional[uuid.UUID] = None) -> List[Flashcard]:
    qs = _pending_for(user_id)
    if exclude_session_id is not None:
        qs = qs.exclude(ai_session_id=exclude_session_id)
    return list(qs)


def _orphan_cutoff(now: Optional[dt.datetime] = None) -> dt.datetime:
    now = now or timezone.now()
    return now - dt.timedelta(days=get_setting("ORPHAN_AFTER_DAYS"))


def list_orphaned_candidates(user_id: str, now: Optional[dt.datetime] = None) -> List[Flashcard]:
    """Candidates left unreviewed for longer than ORPHAN_AFTER_DAYS."""
    return list(_pending_for(user_id).filter(created_at__lt=_orphan_cutoff(now)))


def delete_orphaned_candidates(user_id: str, now: Optional[dt.datetime] = None) -> int:
    now = now or timezone.now()
    with transaction.atomic():
        deleted = _pending_for(user_id).filter(created_at__lt=_orphan_cutoff(now)).update(deleted_at=now)
        if deleted:
            log_event(user_id, EventType.ORPHANED_CANDIDATES_DELETED, Source.AI)
    return deleted


# ---------- flashcards ----------

def list_flashcards(user_id: str, *, page: int = 1, limit: Optional[int] = None, sort: str = "created_at") -> Dict:
    """
    Paginated active flashcards.
    Rules:
      1) Candidates (session link set) and soft-deleted rows are never listed.
      2) sort=created_at → newest first; sort=front → alphabetical.
    """
    limit = limit or get_setting("PAGE_SIZE_DEFAULT")
    ordering = "front" if sort == "front" else "-created_at"
    qs = _active_for(user_id).order_by(ordering, "id")
    total = qs.count()
    offset = (page - 1) * limit
    return {
        "data": list(qs[offset:offset + limit]),
        "pagination": {"page": page, "limit": limit, "total": total},
    }


def create_flashcards(user_id: str, items: Sequence[Dict]) -> List[Flashcard]:
    """
    Bulk create. Items with source "ai" must reference a session owned by the
    user; the card is created active (not linked for review) with that session
    recorded as its origin.
    """
    with transaction.atomic():
        sessions: Dict[uuid.UUID, GenerationSession] = {}
        for item in items:
            sid = item.get("ai_session_id")
            if sid and sid not in sessions:
                sessions[sid] = resolve_session(sid, user_id)

        created = []
        for item in items:
            sid = item.get("ai_session_id")
            card = Flashcard.objects.create(
                user_id=user_id,
                source=item["source"],
                front=item["front"],
                back=item["back"],
                origin_session=sessions.get(sid) if sid else None,
            )
            log_event(user_id, EventType.FLASHCARD_CREATED, card.source, flashcard=card, session=card.origin_session)
            created.append(card)
    return created


def _get_live_card(user_id: str, flashcard_id: uuid.UUID) -> Flashcard:
    card = Flashcard.objects.filter(id=flashcard_id, user_id=user_id, deleted_at__isnull=True).first()
    if card is None:
        raise NotFound("Flashcard not found")
    return card


def update_flashcard(user_id: str, flashcard_id: uuid.UUID, changes: Dict[str, str]) -> Flashcard:
    with transaction.atomic():
        card = _get_live_card(user_id, flashcard_id)
        fields = []
        for name in ("front", "back"):
            if name in changes:
                setattr(card, name, changes[name])
                fields.append(name)
        card.save(update_fields=fields + ["updated_at"])
        log_event(user_id, EventType.FLASHCARD_UPDATED, card.source, flashcard=card)
    return card


def delete_flashcard(user_id: str, flashcard_id: uuid.UUID) -> None:
    with transaction.atomic():
        card = _get_live_card(user_id, flashcard_id)
        card.deleted_at = timezone.now()
        card.save(update_fields=["deleted_at"])
        log_event(user_id, EventType.FLASHCARD_DELETED, card.source, flashcard=card)


def bulk_delete_flashcards(user_id: str, ids: Sequence[uuid.UUID]) -> int:
    """
    Soft-delete the user's live cards among `ids` and append one
    flashcard_deleted event per card. Returns how many were marked.
    """
    now = timezone.now()
    with transaction.atomic():
        cards = list(
            Flashcard.objects.select_for_update().filter(id__in=list(ids), user_id=user_id, deleted_at__isnull=True)
        )
        Flashcard.objects.filter(id__in=[c.id for c in cards]).update(deleted_at=now)
        for card in cards:
            log_event(user_id, EventType.FLASHCARD_DELETED, card.source, flashcard=card)
    return len(cards)
