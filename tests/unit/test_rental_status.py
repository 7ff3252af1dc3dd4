"""Unit tests for the rental status state machine."""

from decimal import Decimal

import pytest
from uuid_utils.compat import uuid7

from rentwise.core.exceptions import InvalidStatusTransitionError
from rentwise.db.models.rental import PaymentStatus, Rental, RentalStatus
from rentwise.payments.rentals import apply_transition, merge_lines
from rentwise.payments.types import QuoteLine


def _rental(status: RentalStatus) -> Rental:
    return Rental(
        rental_id=uuid7(),
        tenant_id=uuid7(),
        customer_id=uuid7(),
        status=status.value,
        total_amount=Decimal("105.00"),
        deposit_amount=Decimal("31.50"),
    )


class TestRentalStatus:
    @pytest.mark.parametrize(
        "current,target",
        [
            (RentalStatus.DRAFT, RentalStatus.PENDING),
            (RentalStatus.DRAFT, RentalStatus.CONFIRMED),
            (RentalStatus.PENDING, RentalStatus.CONFIRMED),
            (RentalStatus.CONFIRMED, RentalStatus.ACTIVE),
            (RentalStatus.ACTIVE, RentalStatus.COMPLETED),
            (RentalStatus.ACTIVE, RentalStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (RentalStatus.CONFIRMED, RentalStatus.PENDING),
            (RentalStatus.PENDING, RentalStatus.ACTIVE),
            (RentalStatus.COMPLETED, RentalStatus.CANCELLED),
            (RentalStatus.CANCELLED, RentalStatus.CONFIRMED),
        ],
    )
    def test_forbidden_transitions(self, current, target):
        assert not current.can_transition_to(target)

    def test_same_status_is_allowed(self):
        assert RentalStatus.COMPLETED.can_transition_to(RentalStatus.COMPLETED)

    def test_terminal_statuses(self):
        terminal = {status for status in RentalStatus if status.is_terminal}
        assert terminal == {RentalStatus.COMPLETED, RentalStatus.CANCELLED}


class TestApplyTransition:
    def test_moves_status(self):
        rental = _rental(RentalStatus.PENDING)

        assert apply_transition(rental, RentalStatus.CONFIRMED) is True
        assert rental.status == "confirmed"

    def test_noop_for_same_status(self):
        rental = _rental(RentalStatus.CANCELLED)

        assert apply_transition(rental, RentalStatus.CANCELLED) is False

    def test_forbidden_move_raises(self):
        rental = _rental(RentalStatus.COMPLETED)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            apply_transition(rental, RentalStatus.CANCELLED)

        assert exc_info.value.details()["current"] == "completed"
        assert rental.status == "completed"


def test_payment_status_cancelable():
    assert PaymentStatus.REQUIRES_CAPTURE.is_cancelable
    assert not PaymentStatus.SUCCEEDED.is_cancelable


def test_merge_lines_sums_quantities():
    first, second = uuid7(), uuid7()

    merged = merge_lines([QuoteLine(first, 1), QuoteLine(second, 2), QuoteLine(first, 3)])

    assert merged == {first: 4, second: 2}
