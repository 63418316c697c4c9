"""Unit tests for the reservation hold lifecycle."""

import uuid
from datetime import timedelta

import pytest

from wheelshare.domain.enums import ReservationStatus
from wheelshare.domain.errors import DomainError
from wheelshare.domain.reservation import Reservation
from wheelshare.domain.value_objects import utcnow

NIL = uuid.UUID(int=0)


@pytest.fixture
def t0():
    return utcnow()


@pytest.fixture
def reservation(t0):
    return Reservation.create(uuid.uuid4(), uuid.uuid4(), now=t0)


class TestReservationCreation:
    def test_hold_lasts_five_minutes(self, reservation):
        assert reservation.expires_at - reservation.created_at == timedelta(seconds=300)
        assert reservation.status == ReservationStatus.ACTIVE

    def test_nil_user_rejected(self):
        with pytest.raises(DomainError) as exc:
            Reservation.create(NIL, uuid.uuid4())
        assert exc.value.code == "Reservation.InvalidUserId"

    def test_nil_vehicle_rejected(self):
        with pytest.raises(DomainError) as exc:
            Reservation.create(uuid.uuid4(), NIL)
        assert exc.value.code == "Reservation.InvalidVehicleId"


class TestExpiryPredicates:
    def test_active_before_expiry(self, reservation, t0):
        later = t0 + timedelta(seconds=299)
        assert reservation.is_active(later)
        assert not reservation.has_expired(later)

    def test_expired_at_the_boundary(self, reservation, t0):
        boundary = t0 + timedelta(seconds=300)
        assert not reservation.is_active(boundary)
        assert reservation.has_expired(boundary)

    def test_remaining_seconds_rounds_up(self, reservation, t0):
        assert reservation.remaining_seconds(t0 + timedelta(seconds=10.2)) == 290

    def test_remaining_seconds_floors_at_zero(self, reservation, t0):
        assert reservation.remaining_seconds(t0 + timedelta(minutes=10)) == 0

    def test_remaining_seconds_zero_when_not_active(self, reservation, t0):
        reservation.cancel(t0)
        assert reservation.remaining_seconds(t0) == 0


class TestReservationTransitions:
    def test_cancel(self, reservation, t0):
        reservation.cancel(t0)
        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.cancelled_at == t0

    def test_cancel_after_expiry_fails(self, reservation, t0):
        with pytest.raises(DomainError) as exc:
            reservation.cancel(t0 + timedelta(minutes=6))
        assert exc.value.code == "Reservation.AlreadyExpired"
        assert reservation.status == ReservationStatus.ACTIVE

    def test_mark_as_expired(self, reservation, t0):
        reservation.mark_as_expired(t0 + timedelta(minutes=5))
        assert reservation.status == ReservationStatus.EXPIRED

    def test_mark_as_expired_too_early_fails(self, reservation, t0):
        with pytest.raises(DomainError) as exc:
            reservation.mark_as_expired(t0 + timedelta(minutes=1))
        assert exc.value.code == "Reservation.NotYetExpired"

    def test_convert_to_trip(self, reservation, t0):
        reservation.convert_to_trip(t0)
        assert reservation.status == ReservationStatus.CONVERTED
        assert reservation.converted_at == t0

    def test_convert_after_expiry_fails(self, reservation, t0):
        with pytest.raises(DomainError) as exc:
            reservation.convert_to_trip(t0 + timedelta(minutes=5))
        assert exc.value.code == "Reservation.Expired"

    @pytest.mark.parametrize("action", ["cancel", "convert_to_trip", "mark_as_expired"])
    def test_second_transition_fails_and_changes_nothing(self, reservation, t0, action):
        reservation.cancel(t0)
        with pytest.raises(DomainError) as exc:
            getattr(reservation, action)(t0 + timedelta(minutes=10))
        assert exc.value.code == "Reservation.NotActive"
        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.cancelled_at == t0
        assert reservation.converted_at is None
