# flashcards/views.py
from __future__ import annotations

from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import review, services
from .conf import get_setting
from .exceptions import NotFound, RequestValidationError, flatten_errors
from .generation import generate_candidates
from .serializers import (
    BulkDeleteSerializer,
    CandidateSerializer,
    FlashcardCreateSerializer,
    FlashcardListQuerySerializer,
    FlashcardSerializer,
    FlashcardUpdateSerializer,
    GenerationSessionCreateSerializer,
    PendingCandidateSerializer,
)

_uuid_field = serializers.UUIDField()


def _user_id(request) -> str:
    """The authenticated user's id; never read from the payload."""
    return str(request.user.pk)


def _parse_uuid(value, field: str):
    try:
        return _uuid_field.to_internal_value(value)
    except serializers.ValidationError:
        raise RequestValidationError(
            [{"field": field, "index": None, "path": field, "message": f"Invalid {field} format. Must be a valid UUID."}]
        ) from None


def _validated(serializer):
    if not serializer.is_valid():
        raise RequestValidationError(flatten_errors(serializer.errors))
    return serializer.validated_data


class GenerationSessionCreateView(APIView):
    """POST /api/ai-sessions"""
    def post(self, request):
        data = _validated(GenerationSessionCreateSerializer(data=request.data))
        model = data.get("model") or get_setting("DEFAULT_MODEL")

        session, cards, input_hash = services.create_generation_session(
            _user_id(request), data["input_text"], model, generate_candidates
        )
        return Response({
            "id": str(session.id),
            "candidates": CandidateSerializer(cards, many=True).data,
            "input_text_hash": input_hash,
        }, status=status.HTTP_201_CREATED)


class SessionCandidatesView(APIView):
    """GET /api/ai-sessions/{session_id}/candidates"""
    def get(self, request, session_id: str):
        sid = _parse_uuid(session_id, "session_id")
        cards = services.list_session_candidates(sid, _user_id(request))
        resp = Response(CandidateSerializer(cards, many=True).data, status=status.HTTP_200_OK)
        resp["Cache-Control"] = "private, max-age=0"
        return resp


class CandidateActionsView(APIView):
    """
    POST /api/ai-sessions/{session_id}/candidates/actions
    Body: {"actions": [{"candidate_id", "action", "edited_front"?, "edited_back"?}, ...]}
    Returns {"accepted": [...], "edited": [...], "rejected": [...]}.
    """
    def post(self, request, session_id: str):
        body = request.data if isinstance(request.data, dict) else {}
        outcome = review.process_candidate_actions(session_id, _user_id(request), body.get("actions"))
        return Response(outcome.as_dict(), status=status.HTTP_200_OK)


class PendingCandidatesView(APIView):
    """GET /api/candidates/pending"""
    def get(self, request):
        cards = services.list_pending_candidates(_user_id(request))
        return Response(PendingCandidateSerializer(cards, many=True).data, status=status.HTTP_200_OK)


class OtherPendingCandidatesView(APIView):
    """GET /api/candidates/other-pending?exclude_session_id=..."""
    def get(self, request):
        raw = request.query_params.get("exclude_session_id")
        exclude = _parse_uuid(raw, "exclude_session_id") if raw else None
        cards = services.list_pending_candidates(_user_id(request), exclude_session_id=exclude)
        return Response(PendingCandidateSerializer(cards, many=True).data, status=status.HTTP_200_OK)


class OrphanedCandidatesView(APIView):
    """GET / DELETE /api/candidates/orphaned"""
    def get(self, request):
        cards = services.list_orphaned_candidates(_user_id(request))
        return Response({
            "count": len(cards),
            "candidates": PendingCandidateSerializer(cards, many=True).data,
        }, status=status.HTTP_200_OK)

    def delete(self, request):
        n = services.delete_orphaned_candidates(_user_id(request))
        return Response({
            "deleted": n,
            "message": f"Deleted {n} orphaned candidate{'' if n == 1 else 's'}",
        }, status=status.HTTP_200_OK)


class FlashcardCollectionView(APIView):
    """GET / POST / DELETE /api/flashcards"""
    def get(self, request):
        query = _validated(FlashcardListQuerySerializer(data=request.query_params))
        result = services.list_flashcards(
            _user_id(request), page=query["page"], limit=query.get("limit"), sort=query["sort"]
        )
        return Response({
            "data": FlashcardSerializer(result["data"], many=True).data,
            "pagination": result["pagination"],
        }, status=status.HTTP_200_OK)

    def post(self, request):
        items = request.data
        limit = get_setting("MAX_BATCH_SIZE")
        if not isinstance(items, list) or not items or len(items) > limit:
            raise RequestValidationError([{
                "field": None, "index": None, "path": None,
                "message": f"Body must be a list of 1 to {limit} flashcards.",
            }])
        data = _validated(FlashcardCreateSerializer(data=items, many=True))
        created = services.create_flashcards(_user_id(request), data)
        return Response({"created": FlashcardSerializer(created, many=True).data}, status=status.HTTP_201_CREATED)

    def delete(self, request):
        data = _validated(BulkDeleteSerializer(data=request.data))
        n = services.bulk_delete_flashcards(_user_id(request), data["ids"])
        if n == 0:
            raise NotFound("No flashcards found to delete")
        return Response({"deleted": n}, status=status.HTTP_200_OK)


class FlashcardDetailView(APIView):
    """PATCH / DELETE /api/flashcards/{flashcard_id}"""
    def patch(self, request, flashcard_id: str):
        fid = _parse_uuid(flashcard_id, "flashcard_id")
        changes = _validated(FlashcardUpdateSerializer(data=request.data))
        card = services.update_flashcard(_user_id(request), fid, changes)
        return Response(FlashcardSerializer(card).data, status=status.HTTP_200_OK)

    def delete(self, request, flashcard_id: str):
        fid = _parse_uuid(flashcard_id, "flashcard_id")
        services.delete_flashcard(_user_id(request), fid)
        return Response(status=status.HTTP_204_NO_CONTENT)
