from __future__ import annotations

import pytest

from conftest import user
from cardhub.core.errors import (
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    UnauthenticatedError,
)
from cardhub.repositories import CARD_LIMITS_DOC, CARD_STATS, CARD_VIEWS, CARDS, SYSTEM_CONFIG, USERS

U1 = user("u1", email="u1@example.com", display_name="User One")
U2 = user("u2")
ADMIN = user("root", admin=True)


def _allow(store, free: int = 5) -> None:
    store.set(SYSTEM_CONFIG, CARD_LIMITS_DOC, {"free": free, "pro": 10})


def _create(services, principal, **fields):
    fields.setdefault("fullName", "Jane Doe")
    return services.cards.create(principal, fields)


# -------------------------- create --------------------------
def test_same_name_from_two_owners_gets_suffixed_slug(services):
    first = _create(services, U1)
    second = _create(services, U2)
    assert first["slug"] == "jane-doe"
    assert second["slug"] == "jane-doe-1"


def test_create_stamps_owner_and_defaults(services, store):
    created = _create(services, U1, title="CTO", userId="intruder", createdAt="1999")
    card = store.get(CARDS, created["cardId"])
    assert card.get("userId") == "u1"
    assert card.get("active") is True
    assert card.get("title") == "CTO"
    assert card.get("createdAt") == card.get("updatedAt") != "1999"
    assert created["card"]["id"] == created["cardId"]


def test_create_bootstraps_account_and_counters(services, store):
    created = _create(services, U1)
    account = store.get(USERS, "u1")
    assert account.get("plan") == "free"
    assert account.get("email") == "u1@example.com"
    assert account.get("cardsCreated") == 1
    stats = store.get(CARD_STATS, created["cardId"])
    assert stats.data["views"] == 0 and stats.data["downloads"] == 0


def test_create_slug_sources(services, store):
    _allow(store)
    assert _create(services, U1, fullName=None, firstName="Ana", lastName="Lima")["slug"] == "ana-lima"
    assert _create(services, U1, slug="My-Card")["slug"] == "my-card"
    assert services.cards.create(U1, {})["slug"] == "user-one"
    with pytest.raises(InvalidArgumentError):
        services.cards.create(user("nameless"), {})


def test_create_requires_principal(services):
    with pytest.raises(UnauthenticatedError):
        _create(services, None)


def test_create_rejects_non_boolean_active(services):
    with pytest.raises(InvalidArgumentError):
        _create(services, U1, active="yes")


# -------------------------- quota --------------------------
def test_second_card_on_free_plan_exceeds_quota(services):
    _create(services, U1)
    with pytest.raises(QuotaExceededError) as excinfo:
        _create(services, U1, fullName="Other Name")
    assert excinfo.value.current == 1
    assert excinfo.value.limit == 1
    assert excinfo.value.details == {"current": 1, "limit": 1}


def test_quota_counts_only_published_cards(services):
    _create(services, U1, active=False)
    status = services.quotas.check("u1")
    assert status.allowed and status.current == 0 and status.limit == 1
    _create(services, U1, fullName="Second")


def test_quota_limit_comes_from_config_document(services, store):
    _allow(store, free=2)
    _create(services, U1)
    _create(services, U1)
    with pytest.raises(QuotaExceededError) as excinfo:
        _create(services, U1)
    assert (excinfo.value.current, excinfo.value.limit) == (2, 2)


def test_pro_plan_raises_the_limit(services):
    _create(services, U1)
    services.accounts.upgrade(U1, "tok_visa")
    status = services.quotas.check("u1")
    assert status.limit == 10 and status.allowed
    _create(services, U1, fullName="Second Card")


# -------------------------- read path --------------------------
def test_anonymous_cannot_read_inactive_card_by_slug(services):
    _create(services, U1, active=False)
    with pytest.raises(PermissionDeniedError):
        services.cards.get_by_slug("jane-doe", None)
    assert services.cards.get_by_slug("jane-doe", U1)["slug"] == "jane-doe"


def test_missing_card_is_not_found_before_visibility(services):
    with pytest.raises(NotFoundError):
        services.cards.get_by_id("nope", None)
    with pytest.raises(NotFoundError):
        services.cards.get_by_slug("nope", U2)


def test_non_owner_view_creates_stats_then_increments(services, store):
    created = _create(services, U1)
    card_id = created["cardId"]
    store.delete(CARD_STATS, card_id)

    card = services.cards.get_by_slug("jane-doe", None)
    assert card["id"] == card_id
    assert store.get(CARD_STATS, card_id).data["views"] == 1

    services.cards.get_by_id(card_id, U2)
    assert store.get(CARD_STATS, card_id).data["views"] == 2

    views = store.find(CARD_VIEWS, {"cardId": card_id})
    assert sorted(v.get("viewerId") for v in views) == ["anonymous", "u2"]
    assert [v.get("slug") for v in views if v.get("viewerId") == "anonymous"] == ["jane-doe"]


def test_owner_view_is_not_tracked(services, store):
    card_id = _create(services, U1)["cardId"]
    services.cards.get_by_id(card_id, U1)
    assert store.get(CARD_STATS, card_id).data["views"] == 0
    assert store.find(CARD_VIEWS) == []


def test_view_tracking_failure_does_not_fail_read(services, monkeypatch):
    card_id = _create(services, U1)["cardId"]

    def _boom(*args, **kwargs):
        raise RuntimeError("stats backend down")

    monkeypatch.setattr(services.stats, "bump", _boom)
    assert services.cards.get_by_id(card_id, U2)["id"] == card_id


def test_store_failure_surfaces_as_internal(services, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(services.store, "get", _boom)
    with pytest.raises(InternalError) as excinfo:
        services.cards.get_by_id("any", U1)
    assert "connection reset" in excinfo.value.message


def test_list_user_cards_newest_first(services, store):
    _allow(store)
    first = _create(services, U1)["cardId"]
    second = _create(services, U1)["cardId"]
    assert [c["id"] for c in services.cards.list_for_user(U1)] == [second, first]

    services.cards.update(first, U1, {"title": "Updated"})
    assert [c["id"] for c in services.cards.list_for_user(U1)] == [first, second]


def test_list_user_cards_is_owner_or_admin_only(services):
    _create(services, U1)
    with pytest.raises(UnauthenticatedError):
        services.cards.list_for_user(None)
    with pytest.raises(PermissionDeniedError):
        services.cards.list_for_user(U2, "u1")
    assert len(services.cards.list_for_user(ADMIN, "u1")) == 1
    assert services.cards.list_for_user(U2) == []


# -------------------------- update --------------------------
def test_update_strips_immutable_fields_and_stamps_time(services, store):
    card_id = _create(services, U1)["cardId"]
    before = store.get(CARDS, card_id)

    result = services.cards.update(
        card_id,
        U1,
        {"id": "other", "userId": "u2", "createdAt": "1999", "updatedAt": "1999", "title": "CEO"},
    )

    after = store.get(CARDS, card_id)
    assert result["success"] is True
    assert after.get("title") == "CEO"
    assert after.get("userId") == "u1"
    assert after.get("createdAt") == before.get("createdAt")
    assert after.get("updatedAt") >= before.get("updatedAt")
    assert store.get(CARDS, "other") is None


def test_update_permissions(services):
    card_id = _create(services, U1)["cardId"]
    with pytest.raises(UnauthenticatedError):
        services.cards.update(card_id, None, {"title": "x"})
    with pytest.raises(PermissionDeniedError):
        services.cards.update(card_id, U2, {"title": "x"})
    with pytest.raises(NotFoundError):
        services.cards.update("missing", U1, {"title": "x"})
    with pytest.raises(InvalidArgumentError):
        services.cards.update(card_id, U1, None)


def test_update_to_taken_slug_gets_suffix(services, store):
    _create(services, U2, fullName="Taken Name")
    card_id = _create(services, U1)["cardId"]

    services.cards.update(card_id, U1, {"slug": "taken-name"})
    slug = store.get(CARDS, card_id).get("slug")
    assert slug.startswith("taken-name-")
    assert slug[len("taken-name-"):].isdigit()

    services.cards.update(card_id, U1, {"slug": "brand-new"})
    assert store.get(CARDS, card_id).get("slug") == "brand-new"


def test_update_with_same_slug_keeps_it(services, store):
    card_id = _create(services, U1)["cardId"]
    services.cards.update(card_id, U1, {"slug": "jane-doe", "phone": "+1 555"})
    assert store.get(CARDS, card_id).get("slug") == "jane-doe"


@pytest.mark.parametrize("typed", ["Jane-Doe", " jane-doe ", "JANE-DOE"])
def test_update_with_own_slug_typed_differently_keeps_it(services, store, typed):
    card_id = _create(services, U1)["cardId"]
    services.cards.update(card_id, U1, {"slug": typed})
    assert store.get(CARDS, card_id).get("slug") == "jane-doe"


def test_update_rejects_non_string_slug(services):
    card_id = _create(services, U1)["cardId"]
    with pytest.raises(InvalidArgumentError):
        services.cards.update(card_id, U1, {"slug": 42})


# -------------------------- delete --------------------------
def test_delete_decrements_counter_and_second_delete_is_not_found(services, store):
    card_id = _create(services, U1)["cardId"]
    services.cards.get_by_id(card_id, U2)
    assert store.get(USERS, "u1").get("cardsCreated") == 1

    assert services.cards.delete(card_id, U1) == {"success": True}

    assert store.get(CARDS, card_id) is None
    assert store.get(USERS, "u1").get("cardsCreated") == 0
    assert store.get(CARD_STATS, card_id) is None
    assert len(store.find(CARD_VIEWS, {"cardId": card_id})) == 1
    with pytest.raises(NotFoundError):
        services.cards.delete(card_id, U1)


def test_delete_never_moves_counter_below_zero(services, store):
    card_id = _create(services, U1)["cardId"]
    store.update(USERS, "u1", {"cardsCreated": 0})
    services.cards.delete(card_id, U1)
    assert store.get(USERS, "u1").get("cardsCreated") == 0


def test_delete_permissions(services, store):
    card_id = _create(services, U1)["cardId"]
    with pytest.raises(UnauthenticatedError):
        services.cards.delete(card_id, None)
    with pytest.raises(PermissionDeniedError):
        services.cards.delete(card_id, U2)
    assert store.get(CARDS, card_id) is not None


def test_stats_cleanup_failure_keeps_the_deletion(services, store, monkeypatch):
    card_id = _create(services, U1)["cardId"]
    original_delete = store.delete

    def _flaky_delete(collection, doc_id):
        if collection == CARD_STATS:
            raise RuntimeError("stats unavailable")
        return original_delete(collection, doc_id)

    monkeypatch.setattr(store, "delete", _flaky_delete)
    assert services.cards.delete(card_id, U1)["success"] is True
    assert store.get(CARDS, card_id) is None
    assert store.get(CARD_STATS, card_id) is not None


# -------------------------- plan upgrade --------------------------
def test_upgrade_requires_principal_and_token(services):
    with pytest.raises(UnauthenticatedError):
        services.accounts.upgrade(None, "tok")
    with pytest.raises(InvalidArgumentError):
        services.accounts.upgrade(U1, "  ")


def test_upgrade_merges_plan_into_account(services, store):
    _create(services, U1)
    assert services.accounts.upgrade(U1, "tok") == {"plan": "pro", "cardLimit": 10}
    account = store.get(USERS, "u1")
    assert account.get("plan") == "pro"
    assert account.get("cardLimit") == 10
    assert account.get("cardsCreated") == 1
    assert account.get("upgradedAt")


def test_initialize_card_limits_writes_config(services, store):
    assert services.accounts.initialize_card_limits() == {"free": 1, "pro": 10}
    assert store.get(SYSTEM_CONFIG, CARD_LIMITS_DOC).get("free") == 1


def test_missing_transaction_result_is_internal(services, store, monkeypatch):
    monkeypatch.setattr(store, "run_transaction", lambda *args, **kwargs: None)
    with pytest.raises(InternalError):
        services.accounts.ensure_account(U1)
    with pytest.raises(InternalError):
        store.increment(USERS, "u1", "cardsCreated")


# -------------------------- stats --------------------------
def test_card_stats_are_owner_only(services, store):
    card_id = _create(services, U1)["cardId"]
    stats = services.cards.stats_for(card_id, U1)
    assert (stats["views"], stats["downloads"], stats["shares"]) == (0, 0, 0)

    services.cards.get_by_id(card_id, U2)
    assert services.cards.stats_for(card_id, U1)["views"] == 1

    with pytest.raises(PermissionDeniedError):
        services.cards.stats_for(card_id, U2)
    with pytest.raises(UnauthenticatedError):
        services.cards.stats_for(card_id, None)
    with pytest.raises(NotFoundError):
        services.cards.stats_for("missing", U1)


def test_card_stats_default_to_zero_without_stats_document(services, store):
    card_id = _create(services, U1)["cardId"]
    store.delete(CARD_STATS, card_id)
    stats = services.cards.stats_for(card_id, U1)
    assert stats["id"] == card_id
    assert stats["userId"] == "u1"
    assert stats["views"] == 0
