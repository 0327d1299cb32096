"""
Business-rule failures.

Every error here is scoped to the request that raised it and is reported to
the caller as a client fault.  ``code`` is the stable error kind exposed in
API responses; ``status_code`` is the HTTP status the boundary maps it to.
Persistence failures are deliberately *not* part of this hierarchy.
"""


class BusinessRuleError(Exception):
    """Base class for all expected, caller-visible failures."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self.args[0])

    @property
    def code(self) -> str:
        return type(self).__name__


# ── Geography / booking input ─────────────────────────────────────────


class InvalidCoordinate(BusinessRuleError):
    """Coordinate is not numeric or out of range."""


class OutOfServiceArea(BusinessRuleError):
    """Location is outside our service area."""


class TripTooShort(BusinessRuleError):
    """Trip is shorter than the minimum distance."""


class TripTooLong(BusinessRuleError):
    """Trip is longer than the maximum distance."""


class InvalidAddress(BusinessRuleError):
    """Address is required and must be a string."""


class InvalidPickupTime(BusinessRuleError):
    """Pickup date/time could not be parsed."""


class PickupTimeTooSoon(BusinessRuleError):
    """Pickup time is too close to now."""


class PickupTimeTooFarOut(BusinessRuleError):
    """Pickup time is too far in the future."""


class BookingNumberGenerationExhausted(BusinessRuleError):
    """Failed to generate a unique booking number."""

    status_code = 503


class CustomerNotFound(BusinessRuleError):
    """Customer not found."""

    status_code = 404


# ── Pricing ───────────────────────────────────────────────────────────


class UnknownVehicleType(BusinessRuleError):
    """No pricing configured for the vehicle type."""


class InvalidPricingConfig(BusinessRuleError):
    """Pricing configuration is invalid."""

    status_code = 422


# ── Drivers / jobs ────────────────────────────────────────────────────


class DriverNotFound(BusinessRuleError):
    """Driver not found."""

    status_code = 404


class DriverNotApproved(BusinessRuleError):
    """Driver account not approved."""

    status_code = 403


class NoActiveVehicle(BusinessRuleError):
    """No active vehicles linked to this driver."""

    status_code = 409


class DriverNotAvailable(BusinessRuleError):
    """Driver is not available to accept jobs."""

    status_code = 409


class DriverHasActiveJob(BusinessRuleError):
    """Driver already has an active job."""

    status_code = 409


class InvalidAvailabilityStatus(BusinessRuleError):
    """Availability status cannot be set by the driver."""


class JobNotFound(BusinessRuleError):
    """Job not found."""

    status_code = 404


class BookingNotFound(BusinessRuleError):
    """Booking not found."""

    status_code = 404


class JobAlreadyTaken(BusinessRuleError):
    """Job has already been accepted by another driver."""

    status_code = 409


class JobNotPending(BusinessRuleError):
    """Job is no longer available."""

    status_code = 409


class VehicleTypeMismatch(BusinessRuleError):
    """Driver does not have the required vehicle type."""

    status_code = 409


class InvalidTransition(BusinessRuleError):
    """Booking status change violates the state machine."""

    status_code = 409
