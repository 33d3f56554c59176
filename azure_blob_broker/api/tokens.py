"""Operation tokens carrying the provisioning result through OSB clients."""

import base64
import json
from typing import Any, Dict, Tuple, Union

from azure_blob_broker.exceptions import InvalidProvisioningResultError, UnknownOperationError
from azure_blob_broker.models.service_broker import LastOperation


def encode_operation(last_operation: Union[LastOperation, str], provisioning_result: Dict[str, Any]) -> str:
    """Pack the phase and provisioning result into an OSB ``operation`` string."""
    payload = json.dumps(
        {
            'last_operation': LastOperation(last_operation).value,
            'provisioning_result': provisioning_result,
        },
        separators=(',', ':'),
        sort_keys=True
    )
    return base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii').rstrip('=')


def decode_operation(token: str) -> Tuple[LastOperation, Dict[str, Any]]:
    """Unpack an ``operation`` string produced by ``encode_operation``."""
    if not token:
        raise InvalidProvisioningResultError("Operation token is required")

    try:
        padded = token + '=' * (-len(token) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode('ascii')))
    except ValueError as e:
        raise InvalidProvisioningResultError(f"Malformed operation token: {e}")

    if not isinstance(payload, dict) or not isinstance(payload.get('provisioning_result'), dict):
        raise InvalidProvisioningResultError("Operation token carries no provisioning result")

    try:
        last_operation = LastOperation(payload.get('last_operation'))
    except ValueError:
        raise UnknownOperationError(payload.get('last_operation'))

    return last_operation, payload['provisioning_result']
