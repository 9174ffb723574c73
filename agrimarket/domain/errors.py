# agrimarket/domain/errors.py


class MarketError(Exception):
    """Base for errors that map straight onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(MarketError):
    status_code = 404


class InvalidArgument(MarketError):
    status_code = 400


class Conflict(MarketError):
    # stock/quantity violations surface as 400 to clients
    status_code = 400


class Unauthorized(MarketError):
    status_code = 401


class Forbidden(MarketError):
    status_code = 403


class Unavailable(MarketError):
    status_code = 503

    def __init__(self, message: str, retry_after: int | None = None, **details):
        super().__init__(message, **details)
        self.retry_after = retry_after


class RateLimited(Unavailable):
    status_code = 429
