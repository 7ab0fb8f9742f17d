from __future__ import annotations

import logging

from fastapi import HTTPException, status

from chefscript.app.domain import errors as domain
from chefscript.services import errors as service

logger = logging.getLogger(__name__)

# Checked in order; subclasses must precede their bases.
_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (service.ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (service.InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (service.ProviderAuthError, status.HTTP_502_BAD_GATEWAY),
    (service.RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (service.InsufficientCreditsError, status.HTTP_402_PAYMENT_REQUIRED),
    (service.NetworkTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (service.ImageGenerationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (service.ContentModeratedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (service.TaskNotFoundError, status.HTTP_502_BAD_GATEWAY),
    (service.InvalidResponseError, status.HTTP_502_BAD_GATEWAY),
    (service.ProviderError, status.HTTP_502_BAD_GATEWAY),
    (domain.InsufficientTokensError, status.HTTP_402_PAYMENT_REQUIRED),
    (domain.MissingSectionsError, status.HTTP_400_BAD_REQUEST),
    (domain.TemplateNotFoundError, status.HTTP_404_NOT_FOUND),
    (domain.LayerNotFoundError, status.HTTP_404_NOT_FOUND),
    (domain.InvalidSceneError, status.HTTP_400_BAD_REQUEST),
    (domain.SpreadsheetError, status.HTTP_400_BAD_REQUEST),
    (domain.PaymentError, status.HTTP_402_PAYMENT_REQUIRED),
    (domain.StyleCreationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (domain.TokenLedgerError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a service or domain error into the HTTP error the client sees."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            if status_code >= 500:
                logger.error("request.failed type=%s message=%s", type(exc).__name__, exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.exception("request.unexpected_error", exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
