# flashcards/serializers.py
import datetime as dt

from django.utils import timezone
from rest_framework import serializers

from .conf import get_setting
from .models import Flashcard, Source

ACTION_ACCEPT = "accept"
ACTION_EDIT = "edit"
ACTION_REJECT = "reject"
ACTIONS = (ACTION_ACCEPT, ACTION_EDIT, ACTION_REJECT)


class AwareDateTimeField(serializers.DateTimeField):
    """
    Datetime field that ensures tz-aware UTC datetimes.
    - Accepts ISO strings with/without timezone; if naive → assume UTC.
    - Always outputs ISO in UTC.
    """
    def to_internal_value(self, value):
        d = super().to_internal_value(value)
        if d is None:
            return None
        if timezone.is_naive(d):
            d = timezone.make_aware(d, dt.timezone.utc)
        return d.astimezone(dt.timezone.utc)

    def to_representation(self, value):
        if value is None:
            return None
        if timezone.is_naive(value):
            value = timezone.make_aware(value, dt.timezone.utc)
        return super().to_representation(value.astimezone(dt.timezone.utc))


# ---------- candidate actions ----------

class CandidateActionSerializer(serializers.Serializer):
    """
    One entry of a candidate-actions batch.
    Notes:
      - edited_front / edited_back are only read for `edit`, where both are required
        and must be non-empty.
      - Length bounds match the Flashcard columns.
    """
    candidate_id = serializers.UUIDField(
        error_messages={"invalid": "candidate_id must be a valid UUID."}
    )
    action = serializers.ChoiceField(
        choices=ACTIONS,
        error_messages={"invalid_choice": "action must be one of: accept, edit, reject."},
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name, key in (("edited_front", "FRONT_MAX_LENGTH"), ("edited_back", "BACK_MAX_LENGTH")):
            limit = get_setting(key)
            self.fields[name] = serializers.CharField(
                required=False,
                allow_blank=True,
                allow_null=True,
                trim_whitespace=False,
                max_length=limit,
                error_messages={"max_length": f"{name} must be at most {limit} characters."},
            )

    def validate(self, attrs):
        if attrs["action"] == ACTION_EDIT:
            missing = {}
            for name in ("edited_front", "edited_back"):
                if not attrs.get(name):
                    missing[name] = f"{name} is required when action is edit."
            if missing:
                raise serializers.ValidationError(missing)
        return attrs


class CandidateActionsRequestSerializer(serializers.Serializer):
    """Session id from the URL plus the `actions` body, validated together."""
    session_id = serializers.UUIDField(
        error_messages={"invalid": "Invalid session_id format. Must be a valid UUID."}
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        limit = get_setting("MAX_BATCH_SIZE")
        self.fields["actions"] = serializers.ListField(
            child=CandidateActionSerializer(),
            allow_empty=False,
            max_length=limit,
            error_messages={
                "required": "actions is required.",
                "not_a_list": "actions must be a list.",
                "empty": "At least one action is required.",
                "max_length": f"Maximum {limit} actions allowed per request.",
            },
        )


# ---------- generation sessions ----------

class GenerationSessionCreateSerializer(serializers.Serializer):
    input_text = serializers.CharField(trim_whitespace=True)
    model = serializers.CharField(required=False)

    def validate_input_text(self, v: str):
        lo = get_setting("INPUT_TEXT_MIN_LENGTH")
        hi = get_setting("INPUT_TEXT_MAX_LENGTH")
        if len(v) < lo:
            raise serializers.ValidationError(f"input_text must be at least {lo} characters.")
        if len(v) > hi:
            raise serializers.ValidationError(f"input_text must be at most {hi} characters.")
        return v

    def validate_model(self, v: str):
        allowed = get_setting("ALLOWED_MODELS")
        if v not in allowed:
            raise serializers.ValidationError(f"Invalid model. Allowed models: {', '.join(allowed)}")
        return v


class CandidateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Flashcard
        fields = ("id", "front", "back", "prompt")


class PendingCandidateSerializer(serializers.ModelSerializer):
    ai_session_id = serializers.UUIDField(read_only=True)
    created_at = AwareDateTimeField(read_only=True)

    class Meta:
        model = Flashcard
        fields = ("id", "front", "back", "prompt", "ai_session_id", "created_at")


# ---------- flashcards ----------

def add_card_text_fields(serializer, required=True):
    """Attach front/back CharFields bounded by FRONT_MAX_LENGTH / BACK_MAX_LENGTH."""
    for name, key in (("front", "FRONT_MAX_LENGTH"), ("back", "BACK_MAX_LENGTH")):
        serializer.fields[name] = serializers.CharField(max_length=get_setting(key), required=required)


class FlashcardSerializer(serializers.ModelSerializer):
    """Read-only snapshot of a flashcard row."""
    ai_session_id = serializers.UUIDField(read_only=True, allow_null=True)
    created_at = AwareDateTimeField(read_only=True)
    updated_at = AwareDateTimeField(read_only=True)
    deleted_at = AwareDateTimeField(read_only=True)

    class Meta:
        model = Flashcard
        fields = (
            "id",
            "user_id",
            "ai_session_id",
            "source",
            "front",
            "back",
            "model",
            "prompt",
            "created_at",
            "updated_at",
            "deleted_at",
        )
        read_only_fields = fields


class FlashcardCreateSerializer(serializers.Serializer):
    """
    One item of POST /api/flashcards.
    Notes:
      - ai_session_id is required when source is "ai"; ownership is checked in the service.
    """
    source = serializers.ChoiceField(choices=Source.choices)
    ai_session_id = serializers.UUIDField(required=False, allow_null=True)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        add_card_text_fields(self)

    def validate(self, attrs):
        if attrs["source"] == Source.AI and not attrs.get("ai_session_id"):
            raise serializers.ValidationError(
                {"ai_session_id": "ai_session_id is required when source is ai."}
            )
        return attrs


class FlashcardUpdateSerializer(serializers.Serializer):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        add_card_text_fields(self, required=False)

    def validate(self, attrs):
        if "front" not in attrs and "back" not in attrs:
            raise serializers.ValidationError("At least front or back must be provided.")
        return attrs


class BulkDeleteSerializer(serializers.Serializer):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["ids"] = serializers.ListField(
            child=serializers.UUIDField(),
            allow_empty=False,
            max_length=get_setting("MAX_BATCH_SIZE"),
        )


class FlashcardListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, required=False)
    sort = serializers.ChoiceField(choices=("created_at", "front"), default="created_at")

    def validate_limit(self, v: int):
        hi = get_setting("PAGE_SIZE_MAX")
        if v > hi:
            raise serializers.ValidationError(f"limit must be <= {hi}.")
        return v
