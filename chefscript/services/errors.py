class ServiceError(Exception):
    pass


class ConfigurationError(ServiceError):
    pass


class InvalidInputError(ServiceError):
    pass


class ProviderAuthError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class InsufficientCreditsError(ServiceError):
    pass


class ContentModeratedError(ServiceError):
    pass


class TaskNotFoundError(ServiceError):
    pass


class InvalidResponseError(ServiceError):
    pass


class ProviderError(ServiceError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float, message: str | None = None):
        super().__init__(message or f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class ImageGenerationTimeoutError(ServiceError):
    def __init__(self, attempts: int, interval_seconds: float):
        super().__init__("Timeout: Image generation took too long")
        self.attempts = attempts
        self.interval_seconds = interval_seconds
