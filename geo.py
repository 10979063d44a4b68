"""Delivery distance and fee calculation."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from math import atan2, cos, radians, sin, sqrt
from typing import Optional

from errors import ConfigurationError, InputError
from schemas import Coordinate, StoreSettings

logger = logging.getLogger(__name__)

# Approximate radius of Earth in kilometres.
_EARTH_RADIUS_KM = 6371.0

_CENTS = Decimal("0.01")


def to_cents(value: float) -> float:
    """Round a currency amount to 2 decimal places, half-up."""
    return float(Decimal(repr(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Return the great-circle distance in km between two coordinates."""
    lat1, lon1, lat2, lon2 = map(radians, [a.lat, a.lng, b.lat, b.lng])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return _EARTH_RADIUS_KM * 2 * atan2(sqrt(h), sqrt(1 - h))


@dataclass(frozen=True)
class FeeQuote:
    """A delivery fee and how it was reached."""

    fee: float
    distance_km: float
    rate_per_km: float
    minimum_fee: Optional[float]
    minimum_applied: bool

    @property
    def calculation_method(self) -> str:
        text = f"{self.distance_km:.2f} km x {self.rate_per_km:.2f}/km"
        if self.minimum_applied:
            text += " (minimum fee applied)"
        return text


def delivery_fee(distance: float, rate_per_km: float, minimum_fee: Optional[float] = None) -> FeeQuote:
    """Price a delivery over ``distance`` km.

    The raw fee is ``distance * rate_per_km``. When a minimum fee is
    configured (None and 0 both mean no floor) and the raw fee is below it,
    the minimum is charged instead. Only the final amount is rounded.

    Args:
        distance: Distance between store and destination in km.
        rate_per_km: Price per kilometre, non-negative.
        minimum_fee: Optional fee floor.

    Returns:
        A FeeQuote carrying the rounded fee and which branch fired.
    """
    if distance < 0 or rate_per_km < 0:
        raise ValueError("distance and rate_per_km must be non-negative")

    fee = distance * rate_per_km
    minimum_applied = False
    if minimum_fee and fee < minimum_fee:
        fee = minimum_fee
        minimum_applied = True

    quote = FeeQuote(
        fee=to_cents(fee),
        distance_km=distance,
        rate_per_km=rate_per_km,
        minimum_fee=minimum_fee or None,
        minimum_applied=minimum_applied,
    )
    logger.debug(
        "Delivery fee %.2f for %.3f km (%s)",
        quote.fee, distance, "minimum applied" if minimum_applied else "per km rate",
    )
    return quote


def quote_delivery(store: StoreSettings, destination: Optional[Coordinate]) -> FeeQuote:
    """Price a delivery from the configured store location to ``destination``."""
    if destination is None:
        raise InputError("Delivery address with coordinates is required")
    origin = store.store_location
    if origin is None:
        raise ConfigurationError("Store location not configured")
    return delivery_fee(
        distance_km(origin, destination),
        store.delivery_fee_per_km,
        store.minimum_delivery_fee,
    )
