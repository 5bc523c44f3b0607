# booking_ledger/bookings/exceptions.py

from booking_ledger.core.exceptions import RecordNotFoundError


class BookingNotFoundError(RecordNotFoundError):
    """Raised when a specific booking cannot be found."""
    def __init__(self, booking_id: int = None):
        self.booking_id = booking_id
        super().__init__("Booking", booking_id)


class UnitNotFoundError(RecordNotFoundError):
    """Raised when the unit referenced by a booking cannot be found."""
    def __init__(self, unit_id: int = None):
        self.unit_id = unit_id
        super().__init__("Unit", unit_id)

