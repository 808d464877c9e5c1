# flashcards/tests/test_candidate_actions_api.py
import uuid

import pytest
from django.db import DatabaseError
from rest_framework.test import APIClient

from flashcards.models import EventLog, EventType, Flashcard


def actions_url(session_id):
    return f"/api/ai-sessions/{session_id}/candidates/actions"


@pytest.mark.django_db
def test_mixed_batch_end_to_end(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a = make_candidate(session, front="QA", back="AA")
    b = make_candidate(session, front="QB", back="AB")
    c = make_candidate(session, front="QC", back="AC")

    r = api_client.post(
        actions_url(session.id),
        {
            "actions": [
                {"candidate_id": str(a.id), "action": "accept"},
                {"candidate_id": str(b.id), "action": "edit", "edited_front": "F", "edited_back": "K"},
                {"candidate_id": str(c.id), "action": "reject"},
            ]
        },
        format="json",
    )
    assert r.status_code == 200
    assert r.json() == {"accepted": [str(a.id)], "edited": [str(b.id)], "rejected": [str(c.id)]}

    a.refresh_from_db()
    b.refresh_from_db()
    c.refresh_from_db()
    assert a.ai_session_id is None and (a.front, a.back) == ("QA", "AA")
    assert b.ai_session_id is None and (b.front, b.back) == ("F", "K")
    assert c.deleted_at is not None and c.ai_session_id == session.id

    events = set(EventLog.objects.filter(ai_session=session).values_list("event_type", "flashcard_id"))
    assert events == {
        (EventType.CANDIDATES_ACCEPTED_UNEDITED, a.id),
        (EventType.CANDIDATES_ACCEPTED_EDITED, b.id),
        (EventType.CANDIDATES_REJECTED, c.id),
    }
    assert set(EventLog.objects.values_list("event_source", flat=True)) == {"ai"}

    session.refresh_from_db()
    assert session.accepted_unedited_count == 1
    assert session.accepted_edited_count == 1


@pytest.mark.django_db
def test_every_id_lands_in_exactly_one_group(api_client, user, make_session, make_candidate):
    session = make_session(user)
    cards = [make_candidate(session, front=f"Q{i}") for i in range(9)]
    kinds = ["accept", "reject", "edit"]
    payload = []
    for i, card in enumerate(cards):
        item = {"candidate_id": str(card.id), "action": kinds[i % 3]}
        if item["action"] == "edit":
            item.update(edited_front=f"front {i}", edited_back=f"back {i}")
        payload.append(item)

    r = api_client.post(actions_url(session.id), {"actions": payload}, format="json")
    assert r.status_code == 200
    body = r.json()
    groups = body["accepted"] + body["edited"] + body["rejected"]
    assert sorted(groups) == sorted(str(c.id) for c in cards)
    # submission order is kept inside each group
    assert body["accepted"] == [str(cards[i].id) for i in (0, 3, 6)]
    assert body["edited"] == [str(cards[i].id) for i in (2, 5, 8)]


@pytest.mark.django_db
def test_empty_batch_is_validation_error(api_client, user, make_session):
    session = make_session(user)
    r = api_client.post(actions_url(session.id), {"actions": []}, format="json")
    assert r.status_code == 400
    data = r.json()
    assert data["kind"] == "validation"
    assert data["errors"][0]["field"] == "actions"
    assert "At least one action" in data["errors"][0]["message"]


@pytest.mark.django_db
def test_missing_actions_field_is_validation_error(api_client, user, make_session):
    session = make_session(user)
    r = api_client.post(actions_url(session.id), {}, format="json")
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "actions"


@pytest.mark.django_db
def test_batch_over_max_size_is_validation_error(api_client, user, make_session):
    session = make_session(user)
    payload = [{"candidate_id": str(uuid.uuid4()), "action": "accept"} for _ in range(101)]
    r = api_client.post(actions_url(session.id), {"actions": payload}, format="json")
    assert r.status_code == 400
    data = r.json()
    assert data["kind"] == "validation"
    assert data["errors"][0]["field"] == "actions"
    assert "Maximum 100 actions" in data["errors"][0]["message"]


@pytest.mark.django_db
def test_edit_missing_back_names_field_and_index(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a = make_candidate(session)
    b = make_candidate(session)
    r = api_client.post(
        actions_url(session.id),
        {
            "actions": [
                {"candidate_id": str(a.id), "action": "accept"},
                {"candidate_id": str(b.id), "action": "edit", "edited_front": "F"},
            ]
        },
        format="json",
    )
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert len(errors) == 1
    assert errors[0]["field"] == "edited_back"
    assert errors[0]["index"] == 1
    assert errors[0]["path"] == "actions.1.edited_back"

    b.refresh_from_db()
    assert b.ai_session_id == session.id


@pytest.mark.django_db
def test_unknown_action_and_bad_candidate_id(api_client, user, make_session):
    session = make_session(user)
    r = api_client.post(
        actions_url(session.id),
        {
            "actions": [
                {"candidate_id": "nope", "action": "accept"},
                {"candidate_id": str(uuid.uuid4()), "action": "archive"},
            ]
        },
        format="json",
    )
    assert r.status_code == 400
    found = {(e["index"], e["field"]) for e in r.json()["errors"]}
    assert found == {(0, "candidate_id"), (1, "action")}


@pytest.mark.django_db
def test_edited_text_over_bounds_is_rejected(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a = make_candidate(session)
    r = api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(a.id), "action": "edit", "edited_front": "x" * 201, "edited_back": "ok"}]},
        format="json",
    )
    assert r.status_code == 400
    err = r.json()["errors"][0]
    assert (err["field"], err["index"]) == ("edited_front", 0)


@pytest.mark.django_db
def test_invalid_session_id_is_validation_error(api_client):
    r = api_client.post(
        actions_url("not-a-uuid"),
        {"actions": [{"candidate_id": str(uuid.uuid4()), "action": "accept"}]},
        format="json",
    )
    assert r.status_code == 400
    data = r.json()
    assert data["kind"] == "validation"
    assert data["errors"][0]["field"] == "session_id"
    assert data["errors"][0]["index"] is None


@pytest.mark.django_db
def test_candidate_from_other_session_is_not_found_and_nothing_changes(
    api_client, user, make_session, make_candidate
):
    s1 = make_session(user)
    s2 = make_session(user)
    mine = make_candidate(s1)
    foreign = make_candidate(s2)

    r = api_client.post(
        actions_url(s1.id),
        {
            "actions": [
                {"candidate_id": str(mine.id), "action": "accept"},
                {"candidate_id": str(foreign.id), "action": "reject"},
            ]
        },
        format="json",
    )
    assert r.status_code == 404
    data = r.json()
    assert data["kind"] == "not_found"
    assert data["missing_ids"] == [str(foreign.id)]
    assert str(foreign.id) in data["detail"]

    mine.refresh_from_db()
    foreign.refresh_from_db()
    assert mine.ai_session_id == s1.id
    assert foreign.deleted_at is None
    assert EventLog.objects.count() == 0
    s1.refresh_from_db()
    assert s1.accepted_unedited_count is None


@pytest.mark.django_db
def test_foreign_and_missing_sessions_look_the_same(
    api_client, other_user, make_session, make_candidate
):
    theirs = make_session(other_user)
    card = make_candidate(theirs)
    payload = {"actions": [{"candidate_id": str(card.id), "action": "accept"}]}

    r_foreign = api_client.post(actions_url(theirs.id), payload, format="json")
    r_missing = api_client.post(actions_url(uuid.uuid4()), payload, format="json")

    assert r_foreign.status_code == r_missing.status_code == 404
    assert r_foreign.json() == r_missing.json() == {"kind": "not_found", "detail": "Session not found"}
    card.refresh_from_db()
    assert card.ai_session_id == theirs.id


@pytest.mark.django_db
def test_resubmitting_accept_batch_succeeds_again(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a = make_candidate(session)
    payload = {"actions": [{"candidate_id": str(a.id), "action": "accept"}]}

    r1 = api_client.post(actions_url(session.id), payload, format="json")
    a.refresh_from_db()
    first_update = a.updated_at

    r2 = api_client.post(actions_url(session.id), payload, format="json")
    assert r1.status_code == r2.status_code == 200
    assert r1.json() == r2.json() == {"accepted": [str(a.id)], "edited": [], "rejected": []}

    a.refresh_from_db()
    assert a.ai_session_id is None
    assert a.updated_at >= first_update
    assert EventLog.objects.filter(flashcard=a).count() == 2


@pytest.mark.django_db
def test_manual_card_never_resolves_as_candidate(api_client, user, make_session, make_card):
    session = make_session(user)
    manual = make_card(user)
    r = api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(manual.id), "action": "reject"}]},
        format="json",
    )
    assert r.status_code == 404
    manual.refresh_from_db()
    assert manual.deleted_at is None


@pytest.mark.django_db
def test_repeated_id_applies_each_action_in_order(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a = make_candidate(session, front="orig")
    r = api_client.post(
        actions_url(session.id),
        {
            "actions": [
                {"candidate_id": str(a.id), "action": "accept"},
                {"candidate_id": str(a.id), "action": "edit", "edited_front": "later", "edited_back": "wins"},
            ]
        },
        format="json",
    )
    assert r.status_code == 200
    assert r.json() == {"accepted": [str(a.id)], "edited": [str(a.id)], "rejected": []}
    a.refresh_from_db()
    assert (a.front, a.back) == ("later", "wins")
    session.refresh_from_db()
    assert (session.accepted_unedited_count, session.accepted_edited_count) == (1, 1)


@pytest.mark.django_db
def test_counters_are_overwritten_by_each_batch(api_client, user, make_session, make_candidate):
    session = make_session(user)
    a, b, c = (make_candidate(session) for _ in range(3))

    api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(a.id), "action": "accept"}, {"candidate_id": str(b.id), "action": "accept"}]},
        format="json",
    )
    session.refresh_from_db()
    assert (session.accepted_unedited_count, session.accepted_edited_count) == (2, 0)

    api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(c.id), "action": "edit", "edited_front": "F", "edited_back": "B"}]},
        format="json",
    )
    session.refresh_from_db()
    assert (session.accepted_unedited_count, session.accepted_edited_count) == (0, 1)


@pytest.mark.django_db
def test_counters_accumulate_when_configured(settings, api_client, user, make_session, make_candidate):
    settings.FLASHCARDS = {**settings.FLASHCARDS, "SESSION_COUNTER_MODE": "accumulate"}
    session = make_session(user)
    a, b = make_candidate(session), make_candidate(session)

    for card, action in ((a, "accept"), (b, "accept")):
        r = api_client.post(
            actions_url(session.id),
            {"actions": [{"candidate_id": str(card.id), "action": action}]},
            format="json",
        )
        assert r.status_code == 200

    session.refresh_from_db()
    assert (session.accepted_unedited_count, session.accepted_edited_count) == (2, 0)


@pytest.mark.django_db
def test_storage_failure_rolls_back_whole_batch(monkeypatch, api_client, user, make_session, make_candidate):
    session = make_session(user)
    a, b = make_candidate(session), make_candidate(session)

    real_create = EventLog.objects.create
    calls = {"n": 0}

    def flaky_create(**kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise DatabaseError("disk full")
        return real_create(**kwargs)

    monkeypatch.setattr(EventLog.objects, "create", flaky_create)

    r = api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(a.id), "action": "accept"}, {"candidate_id": str(b.id), "action": "reject"}]},
        format="json",
    )
    assert r.status_code == 500
    assert r.json()["kind"] == "internal"

    a.refresh_from_db()
    b.refresh_from_db()
    assert a.ai_session_id == session.id
    assert b.deleted_at is None
    assert Flashcard.objects.filter(ai_session=session).count() == 2
    assert EventLog.objects.count() == 0


@pytest.mark.django_db
def test_unauthenticated_request_is_401(user, make_session):
    session = make_session(user)
    r = APIClient().post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(uuid.uuid4()), "action": "accept"}]},
        format="json",
    )
    assert r.status_code == 401
    assert r.json()["kind"] == "unauthenticated"


@pytest.mark.django_db
def test_misconfigured_counter_mode_is_internal_and_rolls_back(
    settings, api_client, user, make_session, make_candidate
):
    settings.FLASHCARDS = {**settings.FLASHCARDS, "SESSION_COUNTER_MODE": "sum"}
    session = make_session(user)
    a = make_candidate(session)

    r = api_client.post(
        actions_url(session.id),
        {"actions": [{"candidate_id": str(a.id), "action": "accept"}]},
        format="json",
    )
    assert r.status_code == 500
    assert r.json()["kind"] == "internal"
    a.refresh_from_db()
    assert a.ai_session_id == session.id
    assert EventLog.objects.count() == 0
