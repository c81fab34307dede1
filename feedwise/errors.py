"""Exception hierarchy shared by the services and the API layer."""


class FeedwiseError(Exception):
    """Base class for errors raised by this package."""

    code = "INTERNAL_ERROR"


class InvalidRequestError(FeedwiseError):
    """A recommendation request failed boundary validation."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[dict[str, str]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class RecommendationUnavailableError(FeedwiseError):
    """Every dispatched strategy failed, so no result can be produced."""

    def __init__(self, message: str = "No recommendation strategy completed") -> None:
        super().__init__(message)
        self.message = message
