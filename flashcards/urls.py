from django.urls import path

from .views import (
    CandidateActionsView,
    FlashcardCollectionView,
    FlashcardDetailView,
    GenerationSessionCreateView,
    OrphanedCandidatesView,
    OtherPendingCandidatesView,
    PendingCandidatesView,
    SessionCandidatesView,
)

urlpatterns = [
    path("ai-sessions", GenerationSessionCreateView.as_view(), name="ai-session-create"),
    path("ai-sessions/<str:session_id>/candidates", SessionCandidatesView.as_view(), name="session-candidates"),
    path(
        "ai-sessions/<str:session_id>/candidates/actions",
        CandidateActionsView.as_view(),
        name="candidate-actions",
    ),
    path("candidates/pending", PendingCandidatesView.as_view(), name="candidates-pending"),
    path("candidates/other-pending", OtherPendingCandidatesView.as_view(), name="candidates-other-pending"),
    path("candidates/orphaned", OrphanedCandidatesView.as_view(), name="candidates-orphaned"),
    path("flashcards", FlashcardCollectionView.as_view(), name="flashcards"),
    path("flashcards/<str:flashcard_id>", FlashcardDetailView.as_view(), name="flashcard-detail"),
]
