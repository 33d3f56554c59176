"""Error normalization and formatting for broker replies."""

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple

from azure_blob_broker.exceptions import BackendError
from azure_blob_broker.models.service_broker import ServiceError

logger = logging.getLogger(__name__)


def status_text(status_code: int) -> str:
    """Standard reason phrase of an HTTP status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return str(status_code)


def normalize_error(error: Exception) -> ServiceError:
    """Map any adapter or handler failure onto ``{statusCode, code, description}``.

    A status-bearing ``BackendError`` keeps its status and backend code; any
    other failure becomes a 400. The original message is kept verbatim.
    """
    description = getattr(error, 'message', None) or str(error)

    if isinstance(error, BackendError) and error.status_code is not None:
        return ServiceError(
            statusCode=error.status_code,
            code=error.code or status_text(error.status_code),
            description=description
        )

    return ServiceError(
        statusCode=HTTPStatus.BAD_REQUEST.value,
        code=status_text(HTTPStatus.BAD_REQUEST.value),
        description=description
    )


class ErrorResponseFormatter:
    """Formats error records for the Open Service Broker HTTP surface."""

    @staticmethod
    def format_osb_error(
        error: ServiceError,
        operation: Optional[str] = None
    ) -> Tuple[Dict[str, Any], int]:
        """Format an error record for Open Service Broker API compliance.

        Returns:
            Tuple of (response_dict, http_status_code)
        """
        http_status = error.statusCode

        # OSB-specific error mappings
        if operation == 'unbind' and http_status == HTTPStatus.NOT_FOUND:
            http_status = HTTPStatus.GONE.value
        elif http_status < 400 or http_status > 599:
            http_status = HTTPStatus.INTERNAL_SERVER_ERROR.value

        return {
            'error': error.code,
            'description': error.description
        }, http_status

    @staticmethod
    def format_validation_error(message: str) -> Tuple[Dict[str, Any], int]:
        """Format a request validation failure."""
        return {
            'error': 'BadRequest',
            'description': message
        }, HTTPStatus.BAD_REQUEST.value
