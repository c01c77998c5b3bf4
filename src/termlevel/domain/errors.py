"""Exception types raised across termlevel."""


class TermlevelError(Exception):
    """Base class for all termlevel errors."""


class ValidationError(TermlevelError):
    """Missing or invalid user input. Raised before any state change."""


class TermNotFoundError(TermlevelError):
    def __init__(self, name: str):
        super().__init__(f"Term not found: {name}")
        self.name = name


class NoEligibleTermsError(TermlevelError):
    """No term can be quizzed in the requested mode right now."""


class ConfigurationError(TermlevelError):
    """Required configuration (e.g. an API key) is missing."""


class ServiceError(TermlevelError):
    """An external service call failed (network, non-2xx, bad envelope)."""


class QuestionServiceError(ServiceError):
    pass


class GradingServiceError(ServiceError):
    pass


class RecognitionError(ServiceError):
    pass
