# flashcards/review.py
"""
Candidate review: turns a batch of accept / edit / reject decisions into
flashcard transitions, audit events and session counters.

Pipeline per request:
  1) validate_actions       – structural checks, no storage access.
  2) resolve_session /
     resolve_candidates     – one ownership-checked read of every referenced row.
  3) execute_actions        – per-candidate transition + one EventLog row each,
                              in submission order.
  4) update_session_counters
  5) ReviewOutcome.as_dict  – ids grouped by outcome.

Steps 2-4 run inside a single transaction.atomic() block: a failure anywhere
rolls back the whole batch.

Batch semantics:
  - Repeated candidate ids in one batch are not deduplicated; every entry is
    applied in order and reported in its own group.
  - Re-accepting a card that is already active succeeds and refreshes updated_at.
  - With SESSION_COUNTER_MODE="overwrite" the counters hold the latest batch only.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, transaction
from django.utils import timezone

from .conf import COUNTER_MODES, get_setting
from .exceptions import CandidateValidationError, InternalError, NotFound, flatten_errors
from .models import EventLog, EventType, Flashcard, GenerationSession
from .ownership import resolve_candidates, resolve_session
from .serializers import ACTION_ACCEPT, ACTION_EDIT, ACTION_REJECT, CandidateActionsRequestSerializer

logger = logging.getLogger(__name__)

EVENT_FOR_ACTION = {
    ACTION_ACCEPT: EventType.CANDIDATES_ACCEPTED_UNEDITED,
    ACTION_EDIT: EventType.CANDIDATES_ACCEPTED_EDITED,
    ACTION_REJECT: EventType.CANDIDATES_REJECTED,
}


@dataclass(frozen=True)
class CandidateAction:
    candidate_id: uuid.UUID
    action: str
    edited_front: Optional[str] = None
    edited_back: Optional[str] = None


@dataclass
class ReviewOutcome:
    accepted: List[uuid.UUID] = field(default_factory=list)
    edited: List[uuid.UUID] = field(default_factory=list)
    rejected: List[uuid.UUID] = field(default_factory=list)

    def record(self, action: CandidateAction) -> None:
        if action.action == ACTION_ACCEPT:
            self.accepted.append(action.candidate_id)
        elif action.action == ACTION_EDIT:
            self.edited.append(action.candidate_id)
        else:
            self.rejected.append(action.candidate_id)

    def as_dict(self) -> Dict[str, List[str]]:
        return {
            "accepted": [str(i) for i in self.accepted],
            "edited": [str(i) for i in self.edited],
            "rejected": [str(i) for i in self.rejected],
        }


def validate_actions(session_id, actions) -> Tuple[uuid.UUID, List[CandidateAction]]:
    """
    Check the session id and the raw `actions` payload without touching storage.
    Raises CandidateValidationError listing every offending field and batch index.
    """
    data = {"session_id": session_id}
    if actions is not None:
        data["actions"] = actions
    ser = CandidateActionsRequestSerializer(data=data)
    if not ser.is_valid():
        raise CandidateValidationError(flatten_errors(ser.errors))

    parsed = [
        CandidateAction(
            candidate_id=item["candidate_id"],
            action=item["action"],
            edited_front=item.get("edited_front"),
            edited_back=item.get("edited_back"),
        )
        for item in ser.validated_data["actions"]
    ]
    return ser.validated_data["session_id"], parsed


def apply_transition(card: Flashcard, action: CandidateAction, now) -> Tuple[List[str], str]:
    """
    Mutate `card` in memory for one action and return (update_fields, event_type).

      accept -> clear session link                      -> Active
      edit   -> overwrite front/back, clear session link -> Active
      reject -> set deleted_at, keep session link       -> Rejected
    """
    if action.action == ACTION_ACCEPT:
        card.ai_session = None
        card.updated_at = now
        return ["ai_session", "updated_at"], EVENT_FOR_ACTION[ACTION_ACCEPT]
    if action.action == ACTION_EDIT:
        card.front = action.edited_front
        card.back = action.edited_back
        card.ai_session = None
        card.updated_at = now
        return ["front", "back", "ai_session", "updated_at"], EVENT_FOR_ACTION[ACTION_EDIT]
    if action.action == ACTION_REJECT:
        card.deleted_at = now
        return ["deleted_at"], EVENT_FOR_ACTION[ACTION_REJECT]
    raise ValueError(f"unknown action: {action.action}")


def execute_actions(
    session: GenerationSession,
    user_id: str,
    actions: Sequence[CandidateAction],
    cards: Dict[uuid.UUID, Flashcard],
    *,
    now=None,
) -> ReviewOutcome:
    """Apply every action in submission order and append one audit event per action."""
    now = now or timezone.now()
    outcome = ReviewOutcome()
    for action in actions:
        card = cards[action.candidate_id]
        update_fields, event_type = apply_transition(card, action, now)
        card.save(update_fields=update_fields)
        EventLog.objects.create(
            user_id=user_id,
            flashcard=card,
            event_type=event_type,
            event_source=card.source,
            ai_session=session,
        )
        outcome.record(action)
    return outcome


def update_session_counters(
    session: GenerationSession, accepted: int, edited: int, *, mode: Optional[str] = None
) -> GenerationSession:
    """
    Write the batch's acceptance counts onto the session.
    mode="overwrite" stores this batch's counts; mode="accumulate" adds them
    to whatever was stored before.
    """
    mode = mode or get_setting("SESSION_COUNTER_MODE")
    if mode not in COUNTER_MODES:
        raise ImproperlyConfigured(f"SESSION_COUNTER_MODE must be one of {COUNTER_MODES}, got {mode!r}")

    if mode == "accumulate":
        session.accepted_unedited_count = (session.accepted_unedited_count or 0) + accepted
        session.accepted_edited_count = (session.accepted_edited_count or 0) + edited
    else:
        session.accepted_unedited_count = accepted
        session.accepted_edited_count = edited
    session.save(update_fields=["accepted_unedited_count", "accepted_edited_count", "updated_at"])
    return session


def process_candidate_actions(session_id, user_id: str, actions) -> ReviewOutcome:
    """
    Process one batch of candidate actions for `session_id` on behalf of `user_id`.

    Raises:
      CandidateValidationError – malformed batch; nothing was read or written.
      NotFound                 – session or candidates missing / not owned; nothing written.
      InternalError            – storage failure; the transaction was rolled back.
    """
    sid, parsed = validate_actions(session_id, actions)

    try:
        with transaction.atomic():
            session = resolve_session(sid, user_id, lock=True)
            cards = resolve_candidates(session, user_id, (a.candidate_id for a in parsed), lock=True)
            outcome = execute_actions(session, user_id, parsed, cards)
            update_session_counters(session, len(outcome.accepted), len(outcome.edited))
    except NotFound as e:
        logger.warning("candidate actions rejected: session=%s user=%s detail=%s", sid, user_id, e.detail)
        raise
    except DatabaseError as e:
        logger.exception("candidate actions failed: session=%s user=%s", sid, user_id)
        raise InternalError("Failed to process candidate actions.") from e

    logger.info(
        "candidate actions applied: session=%s accepted=%d edited=%d rejected=%d",
        sid, len(outcome.accepted), len(outcome.edited), len(outcome.rejected),
    )
    return outcome
