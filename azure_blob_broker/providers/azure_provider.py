"""Azure Resource Manager backend for storage accounts and blob containers."""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from azure.core.exceptions import AzureError, HttpResponseError, ResourceExistsError
from azure.identity import AzureAuthorityHosts, ClientSecretCredential
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.storage import StorageManagementClient

from azure_blob_broker.exceptions import BackendError, ConfigurationError, GenericError
from azure_blob_broker.models.service_broker import CloudContext
from azure_blob_broker.providers.base import AccessKeys, StorageResourceClient

logger = logging.getLogger(__name__)

# environment name -> (authority host, resource manager endpoint)
CLOUD_ENDPOINTS = {
    'AzureCloud': (AzureAuthorityHosts.AZURE_PUBLIC_CLOUD, 'https://management.azure.com'),
    'AzureChinaCloud': (AzureAuthorityHosts.AZURE_CHINA, 'https://management.chinacloudapi.cn'),
    'AzureUSGovernment': (AzureAuthorityHosts.AZURE_GOVERNMENT, 'https://management.usgovcloudapi.net'),
}


def wrap_azure_error(func):
    """Decorator translating azure-core failures into broker exceptions."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HttpResponseError as e:
            message = e.message or str(e)
            if e.status_code is None:
                raise GenericError(message, cause=e) from e
            code = getattr(e.error, 'code', None) or e.reason
            raise BackendError(message, status_code=e.status_code, code=code, cause=e) from e
        except AzureError as e:
            raise GenericError(e.message or str(e), cause=e) from e

    return wrapper


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, 'value', value)


class AzureStorageClient(StorageResourceClient):
    """Storage backend using the Azure management SDK clients."""

    def __init__(self, cloud: CloudContext):
        """Initialize Azure clients for a cloud environment.

        Args:
            cloud: Environment name plus service principal credentials.
        """
        if cloud.environment not in CLOUD_ENDPOINTS:
            raise ConfigurationError(
                f"Unsupported Azure environment: {cloud.environment}",
                config_key='azure.environment'
            )

        self.cloud = cloud
        self.authority, self.resource_manager_url = CLOUD_ENDPOINTS[cloud.environment]
        self.credential = ClientSecretCredential(
            tenant_id=cloud.tenant_id,
            client_id=cloud.client_id,
            client_secret=cloud.client_secret,
            authority=self.authority
        )

        self._resource_client = None
        self._storage_client = None

    @property
    def resource_client(self) -> ResourceManagementClient:
        """Lazy-load Resource Management Client."""
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(
                self.credential,
                self.cloud.subscription_id,
                base_url=self.resource_manager_url,
                credential_scopes=[f"{self.resource_manager_url}/.default"]
            )
        return self._resource_client

    @property
    def storage_client(self) -> StorageManagementClient:
        """Lazy-load Storage Management Client."""
        if self._storage_client is None:
            self._storage_client = StorageManagementClient(
                self.credential,
                self.cloud.subscription_id,
                base_url=self.resource_manager_url,
                credential_scopes=[f"{self.resource_manager_url}/.default"]
            )
        return self._storage_client

    @wrap_azure_error
    def create_or_update_group(self, resource_group_name: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Creating resource group {resource_group_name}")
        group = self.resource_client.resource_groups.create_or_update(resource_group_name, parameters)

        properties = getattr(group, 'properties', None)
        return {
            'resourceGroupName': resource_group_name,
            'id': group.id,
            'location': group.location,
            'provisioningState': _enum_value(getattr(properties, 'provisioning_state', None)),
        }

    @wrap_azure_error
    def create_or_update_account(
        self,
        resource_group_name: str,
        storage_account_name: str,
        parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        logger.info(f"Starting creation of storage account {storage_account_name} in {resource_group_name}")
        poller = self.storage_client.storage_accounts.begin_create(
            resource_group_name,
            storage_account_name,
            parameters
        )

        return {
            'resourceGroupName': resource_group_name,
            'storageAccountName': storage_account_name,
            'status': poller.status(),
        }

    @wrap_azure_error
    def get_account_provisioning_state(self, resource_group_name: str, storage_account_name: str) -> str:
        account = self.storage_client.storage_accounts.get_properties(resource_group_name, storage_account_name)
        return _enum_value(account.provisioning_state)

    @wrap_azure_error
    def delete_account(self, resource_group_name: str, storage_account_name: str) -> None:
        logger.info(f"Deleting storage account {storage_account_name} in {resource_group_name}")
        self.storage_client.storage_accounts.delete(resource_group_name, storage_account_name)

    @wrap_azure_error
    def list_access_keys(self, resource_group_name: str, storage_account_name: str) -> AccessKeys:
        result = self.storage_client.storage_accounts.list_keys(resource_group_name, storage_account_name)
        keys = list(result.keys or [])
        if not keys:
            raise GenericError(f"Storage account {storage_account_name} returned no access keys")

        return AccessKeys(
            primary=keys[0].value,
            secondary=keys[1].value if len(keys) > 1 else None
        )

    @wrap_azure_error
    def create_container(self, resource_group_name: str, storage_account_name: str, container_name: str) -> None:
        logger.info(f"Creating container {container_name} in storage account {storage_account_name}")
        try:
            self.storage_client.blob_containers.create(
                resource_group_name,
                storage_account_name,
                container_name,
                {}
            )
        except ResourceExistsError:
            logger.info(f"Container {container_name} already exists")
        except HttpResponseError as e:
            if "ContainerAlreadyExists" not in str(e):
                raise
            logger.info(f"Container {container_name} already exists")

    @wrap_azure_error
    def delete_container(self, resource_group_name: str, storage_account_name: str, container_name: str) -> None:
        logger.info(f"Deleting container {container_name} in storage account {storage_account_name}")
        self.storage_client.blob_containers.delete(resource_group_name, storage_account_name, container_name)
