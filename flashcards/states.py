# flashcards/states.py
from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Candidate:
    """Still linked to the generation session that produced it, awaiting review."""
    session_id: uuid.UUID


@dataclass(frozen=True)
class Active:
    """Study-ready: no session link, not deleted."""


@dataclass(frozen=True)
class Rejected:
    """Soft-deleted; hidden from every listing."""
    deleted_at: dt.datetime


CardState = Union[Candidate, Active, Rejected]


def derive_state(session_id: Optional[uuid.UUID], deleted_at: Optional[dt.datetime]) -> CardState:
    # A deletion mark wins over any session link.
    if deleted_at is not None:
        return Rejected(deleted_at=deleted_at)
    if session_id is not None:
        return Candidate(session_id=session_id)
    return Active()
