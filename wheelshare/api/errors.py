"""
Translate handler ``Result`` failures into HTTP responses.

Every failure body has the same shape: ``{"code": ..., "message": ...}``.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import Request, status
from fastapi.responses import JSONResponse

from wheelshare.domain.errors import Error, Result

T = TypeVar("T")

_STATUS_BY_CODE = {
    "Trip.NoActiveTrip": status.HTTP_404_NOT_FOUND,
    "User.InsufficientFunds": status.HTTP_402_PAYMENT_REQUIRED,
    "Payment.NoPaymentMethod": status.HTTP_402_PAYMENT_REQUIRED,
    "Payment.CardExpired": status.HTTP_402_PAYMENT_REQUIRED,
    "Payment.WalletPaymentFailed": status.HTTP_502_BAD_GATEWAY,
    "Payment.CreditCardPaymentFailed": status.HTTP_502_BAD_GATEWAY,
    "Reservation.UserAlreadyHasReservation": status.HTTP_409_CONFLICT,
    "Reservation.VehicleAlreadyReserved": status.HTTP_409_CONFLICT,
    "Reservation.AlreadyExpired": status.HTTP_409_CONFLICT,
    "Reservation.Expired": status.HTTP_409_CONFLICT,
    "Reservation.SweepConflict": status.HTTP_409_CONFLICT,
    "Trip.UserAlreadyHasActiveTrip": status.HTTP_409_CONFLICT,
    "Trip.VehicleAlreadyInUse": status.HTTP_409_CONFLICT,
    "Trip.NoActiveReservation": status.HTTP_409_CONFLICT,
    "Trip.WrongVehicle": status.HTTP_409_CONFLICT,
    "Trip.NotCompleted": status.HTTP_409_CONFLICT,
    "Trip.AlreadyRated": status.HTTP_409_CONFLICT,
    "User.WalletConflict": status.HTTP_409_CONFLICT,
}

_STATUS_BY_SUFFIX = (
    ("NotFound", status.HTTP_404_NOT_FOUND),
    ("Unauthorized", status.HTTP_403_FORBIDDEN),
    ("NotActive", status.HTTP_409_CONFLICT),
)


def status_for(error: Error) -> int:
    if error.code in _STATUS_BY_CODE:
        return _STATUS_BY_CODE[error.code]
    for suffix, code in _STATUS_BY_SUFFIX:
        if error.code.endswith(suffix):
            return code
    if error.code.startswith("Vehicle."):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


class ApiError(Exception):
    def __init__(self, error: Error):
        super().__init__(str(error))
        self.error = error
        self.status_code = status_for(error)


def unwrap(result: Result[T]) -> T:
    """Return the success value or raise ``ApiError`` for the failure."""
    if result.is_failure:
        raise ApiError(result.error)
    return result.value


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.error.code, "message": exc.error.message},
    )
