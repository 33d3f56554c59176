"""Resource names derived from a service instance identifier."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from azure_blob_broker.config import BrokerDefaults

_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9]')


@dataclass(frozen=True)
class ResourceNameSet:
    """Names computed once at provision time."""
    resource_group_name: str
    storage_account_name: str
    location: str
    account_type: str


def storage_account_name_for(instance_id: str, defaults: BrokerDefaults) -> str:
    """Build a storage account name Azure accepts: lowercase alphanumerics only, bounded length."""
    body = _NON_ALPHANUMERIC.sub('', instance_id.lower())
    max_body = max(defaults.max_storage_account_name_length - len(defaults.storage_account_prefix), 0)
    return defaults.storage_account_prefix + body[:max_body]


def derive_resource_names(
    instance_id: str,
    parameters: Optional[Dict[str, Any]],
    environment: Optional[str],
    defaults: BrokerDefaults
) -> ResourceNameSet:
    """Map an instance identifier and request overrides onto resource names.

    A key present in ``parameters`` always wins over the derived default.
    """
    parameters = parameters or {}

    if 'resource_group_name' in parameters:
        resource_group_name = parameters['resource_group_name']
    else:
        resource_group_name = defaults.resource_group_prefix + instance_id

    if 'storage_account_name' in parameters:
        storage_account_name = parameters['storage_account_name']
    else:
        storage_account_name = storage_account_name_for(instance_id, defaults)

    if 'location' in parameters:
        location = parameters['location']
    else:
        location = defaults.location_for(environment)

    account_type = parameters.get('account_type', defaults.account_type)

    return ResourceNameSet(
        resource_group_name=resource_group_name,
        storage_account_name=storage_account_name,
        location=location,
        account_type=account_type
    )


def derive_container_name(
    instance_id: str,
    parameters: Optional[Dict[str, Any]],
    defaults: BrokerDefaults
) -> str:
    """Container used by a binding; an empty override falls back to the default."""
    container_name = (parameters or {}).get('container_name')
    if container_name:
        return container_name
    return defaults.container_prefix + instance_id


def build_account_parameters(
    names: ResourceNameSet,
    parameters: Optional[Dict[str, Any]],
    defaults: BrokerDefaults
) -> Dict[str, Any]:
    """Body of the storage account create call.

    A raw ``parameters`` mapping nested in the request is sent as-is.
    """
    raw = (parameters or {}).get('parameters')
    if raw:
        return dict(raw)

    return {
        'location': names.location,
        'sku': {'name': names.account_type},
        'kind': defaults.account_kind,
    }
