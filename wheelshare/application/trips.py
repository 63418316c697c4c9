"""
Trip handlers
=============

Orchestrates Reservation -> Vehicle -> ActiveTrip -> PaymentProcessor.

Ordering in ``end_trip``
------------------------
1. Close the trip in memory (duration and cost are frozen here).
2. Charge the frozen cost.  On failure the unit is rolled back and
   ``commit()`` is never reached, so the trip stays ACTIVE and the vehicle
   IN_USE.
3. Release the vehicle at the drop-off location.
4. Write the wallet ledger row (wallet payments only) and the receipt.
5. Commit once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from wheelshare.application.dtos import (
    ReceiptView,
    TripHistoryPage,
    TripStats,
    TripSummary,
    TripView,
)
from wheelshare.application.payments import PaymentErrors, PaymentProcessor
from wheelshare.domain.enums import PaymentMethodKind
from wheelshare.domain.errors import DomainError, Result
from wheelshare.domain.pricing import format_distance, format_duration
from wheelshare.domain.receipt import Receipt, ReceiptErrors
from wheelshare.domain.trip import ActiveTrip, TripErrors
from wheelshare.domain.value_objects import Location, QRCode, Rating, utcnow
from wheelshare.domain.wallet import UserErrors, WalletTransaction
from wheelshare.infrastructure.unit_of_work import (
    ConcurrencyConflict,
    SqlAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
NO_CARD_HINT = "No payment card on file: add a card or top up the wallet"


async def start_trip(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    qr_code: str,
    latitude: float,
    longitude: float,
    now: Optional[datetime] = None,
) -> Result[TripView]:
    now = now or utcnow()
    try:
        code = QRCode.create(qr_code)
        location = Location.create(latitude, longitude)
    except DomainError as exc:
        return Result.fail(exc.error)

    vehicle = await uow.vehicles.get_by_code(code.value)
    if vehicle is None:
        return Result.fail(TripErrors.VEHICLE_NOT_FOUND)
    if await uow.trips.get_active_by_user(user_id) is not None:
        return Result.fail(TripErrors.USER_ALREADY_HAS_ACTIVE_TRIP)
    if await uow.trips.get_active_by_vehicle(vehicle.id) is not None:
        return Result.fail(TripErrors.VEHICLE_ALREADY_IN_USE)

    reservation = await uow.reservations.get_active_by_user(user_id)
    if reservation is None or not reservation.is_active(now):
        return Result.fail(TripErrors.NO_ACTIVE_RESERVATION)
    if reservation.vehicle_id != vehicle.id:
        return Result.fail(TripErrors.WRONG_VEHICLE)

    try:
        vehicle.start_trip()
        reservation.convert_to_trip(now)
        trip = ActiveTrip.start(user_id, vehicle.id, reservation.id, location, now)
        uow.trips.add(trip)
    except DomainError as exc:
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict:
        return Result.fail(TripErrors.VEHICLE_ALREADY_IN_USE)

    logger.info(
        "Trip %s started: user %s on vehicle %s at %s",
        trip.id, user_id, vehicle.code, location,
    )
    return Result.ok(TripView.of(trip, now))


async def end_trip(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    latitude: float,
    longitude: float,
    payments: Optional[PaymentProcessor] = None,
    now: Optional[datetime] = None,
) -> Result[TripSummary]:
    now = now or utcnow()
    try:
        end_location = Location.create(latitude, longitude)
    except DomainError as exc:
        return Result.fail(exc.error)

    trip = await uow.trips.get_active_by_user(user_id)
    if trip is None:
        return Result.fail(TripErrors.NO_ACTIVE_TRIP)
    vehicle = await uow.vehicles.get_by_id(trip.vehicle_id)
    if vehicle is None:
        return Result.fail(TripErrors.VEHICLE_NOT_FOUND)
    user = await uow.users.get_by_id(user_id)
    if user is None:
        return Result.fail(TripErrors.USER_NOT_FOUND)

    balance_before = user.wallet_balance
    try:
        trip.end(end_location, now)
    except DomainError as exc:
        return Result.fail(exc.error)

    trip_id, cost = trip.id, trip.total_cost
    payments = payments or PaymentProcessor(uow.users, uow.payment_methods)
    paid = await payments.process_trip_payment(user_id, cost)
    if paid.is_failure:
        # rollback expires every loaded instance; only locals are safe below
        await uow.rollback()
        logger.warning("Payment for trip %s failed: %s", trip_id, paid.error)
        if paid.error == PaymentErrors.NO_PAYMENT_METHOD:
            return Result.fail(
                UserErrors.insufficient_funds(balance_before, cost, NO_CARD_HINT)
            )
        return Result.fail(paid.error)

    payment = paid.value
    minutes = trip.duration_minutes
    meters = trip.tariff.distance_for(minutes)
    time_cost = trip.tariff.time_cost(minutes)
    try:
        vehicle.end_trip(end_location)
        if payment.method == PaymentMethodKind.WALLET:
            uow.wallet_transactions.add(
                WalletTransaction.deduction(
                    user_id,
                    payment.amount_charged,
                    balance_before,
                    user.wallet_balance,
                    payment_details=f"Trip {trip.id}",
                )
            )
        receipt = Receipt.issue(
            trip.id,
            user_id,
            vehicle.code,
            trip.start_time,
            trip.end_time,
            minutes,
            meters,
            trip.start_location,
            end_location,
            trip.tariff.base_cost,
            time_cost,
            trip.total_cost,
            payment.method.value,
            payment.message,
            balance_before,
            user.wallet_balance,
            now,
        )
        uow.receipts.add(receipt)
    except DomainError as exc:
        await uow.rollback()
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict:
        return Result.fail(TripErrors.not_active("end"))

    logger.info(
        "Trip %s completed: %d min, %s MAD, %s (receipt %s)",
        trip.id, minutes, trip.total_cost, payment.message, receipt,
    )
    return Result.ok(
        TripSummary(
            trip_id=trip.id,
            receipt_number=receipt.receipt_number,
            vehicle_code=vehicle.code,
            start_time=trip.start_time,
            end_time=trip.end_time,
            duration_minutes=minutes,
            formatted_duration=format_duration(minutes),
            distance_meters=meters,
            formatted_distance=format_distance(meters),
            base_cost=trip.tariff.base_cost,
            time_cost=time_cost,
            total_cost=trip.total_cost,
            payment_method=payment.method,
            payment_message=payment.message,
            wallet_balance_before=balance_before,
            wallet_balance_after=user.wallet_balance,
            start_location=trip.start_location,
            end_location=end_location,
        )
    )


async def rate_trip(
    uow: SqlAlchemyUnitOfWork,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
    stars: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Result[TripView]:
    try:
        rating = Rating.create(stars, comment)
    except DomainError as exc:
        return Result.fail(exc.error)

    trip = await uow.trips.get_by_id(trip_id)
    if trip is None:
        return Result.fail(TripErrors.NOT_FOUND)
    if trip.user_id != user_id:
        return Result.fail(TripErrors.UNAUTHORIZED)

    try:
        trip.add_rating(rating, now)
    except DomainError as exc:
        return Result.fail(exc.error)

    try:
        await uow.commit()
    except ConcurrencyConflict:
        return Result.fail(TripErrors.ALREADY_RATED)
    logger.info("Trip %s rated %s by user %s", trip_id, rating, user_id)
    return Result.ok(TripView.of(trip, now))


# ── Queries ───────────────────────────────────────────────────────────


async def get_active_trip_stats(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Result[TripStats]:
    trip = await uow.trips.get_active_by_user(user_id)
    if trip is None:
        return Result.fail(TripErrors.NO_ACTIVE_TRIP)
    return Result.ok(TripStats.of(trip, now))


async def get_trip_history(
    uow: SqlAlchemyUnitOfWork,
    user_id: uuid.UUID,
    page: int = 1,
    page_size: int = 20,
) -> Result[TripHistoryPage]:
    if page < 1 or page_size < 1 or page_size > MAX_PAGE_SIZE:
        return Result.fail(TripErrors.INVALID_PAGE)
    trips, total = await uow.trips.get_history(user_id, page, page_size)
    return Result.ok(
        TripHistoryPage(
            items=[TripView.of(t) for t in trips],
            total=total,
            page=page,
            page_size=page_size,
        )
    )


async def get_trip_by_id(
    uow: SqlAlchemyUnitOfWork,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Result[TripView]:
    trip = await uow.trips.get_by_id(trip_id)
    if trip is None:
        return Result.fail(TripErrors.NOT_FOUND)
    if trip.user_id != user_id:
        return Result.fail(TripErrors.UNAUTHORIZED)
    return Result.ok(TripView.of(trip, now))


async def get_trip_receipt(
    uow: SqlAlchemyUnitOfWork,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Result[ReceiptView]:
    """Receipt of one of the caller's completed trips."""
    trip = await uow.trips.get_by_id(trip_id)
    if trip is None:
        return Result.fail(TripErrors.NOT_FOUND)
    if trip.user_id != user_id:
        return Result.fail(TripErrors.UNAUTHORIZED)

    receipt = await uow.receipts.get_by_trip_id(trip_id)
    if receipt is None:
        return Result.fail(ReceiptErrors.NOT_FOUND)
    return Result.ok(ReceiptView.of(receipt))
