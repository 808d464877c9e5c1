import uuid

from django.db import models

from .states import derive_state


class Source(models.TextChoices):
    MANUAL = "manual", "Manual"
    AI = "ai", "AI"


class EventType(models.TextChoices):
    CANDIDATES_ACCEPTED_UNEDITED = "candidates_accepted_unedited"
    CANDIDATES_ACCEPTED_EDITED = "candidates_accepted_edited"
    CANDIDATES_REJECTED = "candidates_rejected"
    GENERATION_SESSION_CREATED = "generation_session_created"
    GENERATION_SESSION_FAILED = "generation_session_failed"
    FLASHCARD_CREATED = "flashcard_created"
    FLASHCARD_UPDATED = "flashcard_updated"
    FLASHCARD_DELETED = "flashcard_deleted"
    ORPHANED_CANDIDATES_DELETED = "orphaned_candidates_deleted"


class GenerationSession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)                 # Owning user
    input_text = models.TextField()                                           # Source text sent to the model
    model = models.CharField(max_length=128, null=True, blank=True)           # Model identifier
    generation_duration = models.PositiveIntegerField(default=0)              # Milliseconds spent generating
    accepted_unedited_count = models.PositiveIntegerField(null=True, blank=True)
    accepted_edited_count = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["user_id", "created_at"], name="idx_session_user_created"),
        ]


class Flashcard(models.Model):
    """
    One row serves both as an AI candidate and as an active flashcard.
    The lifecycle state is derived from `ai_session_id` and `deleted_at`,
    see `states.derive_state`.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)                 # Owning user, never changes
    ai_session = models.ForeignKey(                                           # Review link, cleared on promotion
        GenerationSession,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="candidates",
    )
    origin_session = models.ForeignKey(                                       # Provenance, never cleared
        GenerationSession,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="generated_cards",
    )
    source = models.CharField(max_length=8, choices=Source.choices)
    front = models.CharField(max_length=200)
    back = models.CharField(max_length=500)
    model = models.CharField(max_length=128, null=True, blank=True)
    prompt = models.TextField(null=True, blank=True)                          # Why the model produced this card
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)   # Soft delete marker

    class Meta:
        indexes = [
            models.Index(fields=["user_id", "ai_session"], name="idx_card_user_session"),
            models.Index(fields=["user_id", "deleted_at"], name="idx_card_user_deleted"),
        ]

    @property
    def state(self):
        return derive_state(self.ai_session_id, self.deleted_at)


class EventLog(models.Model):
    """Append-only audit trail."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)
    flashcard = models.ForeignKey(
        Flashcard, null=True, blank=True, on_delete=models.SET_NULL, related_name="events"
    )
    event_type = models.CharField(max_length=64)
    event_source = models.CharField(max_length=8, choices=Source.choices)
    ai_session = models.ForeignKey(
        GenerationSession, null=True, blank=True, on_delete=models.SET_NULL, related_name="events"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at",)
