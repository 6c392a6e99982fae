import pytest

from storefront.errors import AlreadyCancelledError, InvalidTransitionError, ValidationError
from storefront.models.orders import OrderStatus
from storefront.services.lifecycle_service import (
    can_transition,
    parse_status,
    require_cancellable,
    require_open,
    require_returnable,
    require_status_update,
)

S = OrderStatus

ALLOWED = {
    (S.PENDING, S.CONFIRMED),
    (S.PENDING, S.CANCELLED),
    (S.CONFIRMED, S.IN_PROGRESS),
    (S.CONFIRMED, S.CANCELLED),
    (S.IN_PROGRESS, S.DELIVERED),
    (S.IN_PROGRESS, S.CANCELLED),
}


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("target", list(S))
def test_transition_table_is_exact(current, target):
    assert can_transition(current, target) == ((current, target) in ALLOWED)


@pytest.mark.parametrize("current", [S.DELIVERED, S.CANCELLED])
def test_terminal_statuses_allow_nothing(current):
    assert not any(can_transition(current, target) for target in S)


@pytest.mark.parametrize("current", [S.PENDING, S.CONFIRMED, S.IN_PROGRESS])
def test_status_update_never_cancels(current):
    with pytest.raises(InvalidTransitionError):
        require_status_update(current, S.CANCELLED)


def test_status_update_rejects_skipping_ahead():
    with pytest.raises(InvalidTransitionError) as exc:
        require_status_update(S.CONFIRMED, S.DELIVERED)
    assert exc.value.details["allowed"] == ["CANCELLED", "IN_PROGRESS"]


def test_cancellable_only_before_work_starts():
    require_cancellable(S.PENDING)
    require_cancellable(S.CONFIRMED)
    with pytest.raises(InvalidTransitionError):
        require_cancellable(S.IN_PROGRESS)
    with pytest.raises(InvalidTransitionError):
        require_cancellable(S.DELIVERED)
    with pytest.raises(AlreadyCancelledError):
        require_cancellable(S.CANCELLED)


def test_returnable_from_anything_but_cancelled():
    for status in (S.PENDING, S.CONFIRMED, S.IN_PROGRESS, S.DELIVERED):
        require_returnable(status)
    with pytest.raises(AlreadyCancelledError):
        require_returnable(S.CANCELLED)


def test_items_only_added_to_open_orders():
    require_open(S.PENDING)
    require_open(S.CONFIRMED)
    with pytest.raises(InvalidTransitionError):
        require_open(S.IN_PROGRESS)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (S.DELIVERED, S.DELIVERED),
        (3, S.IN_PROGRESS),
        ("3", S.IN_PROGRESS),
        ("in_progress", S.IN_PROGRESS),
        ("In-Progress", S.IN_PROGRESS),
        ("InProgress", S.IN_PROGRESS),
        ("confirmed", S.CONFIRMED),
    ],
)
def test_parse_status_accepts_names_and_codes(raw, expected):
    assert parse_status(raw) is expected


@pytest.mark.parametrize("raw", [0, 9, "shipped", "", None, True])
def test_parse_status_rejects_unknown(raw):
    with pytest.raises(ValidationError):
        parse_status(raw)
