class TravelAgencyError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationFailedError(TravelAgencyError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(TravelAgencyError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", status_code=404)


class ConflictError(TravelAgencyError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class SeatUnavailableError(TravelAgencyError):
    def __init__(self, seats=None):
        self.seats = sorted(seats or [])
        message = "One or more seats are no longer available"
        if self.seats:
            message = f"Seats already taken: {', '.join(str(s) for s in self.seats)}"
        super().__init__(message, status_code=409)


class InsufficientSeatsError(TravelAgencyError):
    def __init__(self, available: int):
        self.available = available
        super().__init__(f"Only {available} seats available", status_code=400)


class InvalidStatusTransitionError(TravelAgencyError):
    def __init__(self, current, requested):
        super().__init__(
            f"Cannot change booking status from {current} to {requested}", status_code=400)


class RateLimitExceededError(TravelAgencyError):
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__("Too many requests, please try again later", status_code=429)


class AuthenticationError(TravelAgencyError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)


class PermissionDeniedError(TravelAgencyError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403)
