"""Tests for the Azure storage backend."""

import pytest
from unittest.mock import Mock, patch

from azure.core.exceptions import HttpResponseError, ResourceExistsError, ServiceRequestError

from azure_blob_broker.exceptions import BackendError, ConfigurationError, GenericError
from azure_blob_broker.models.service_broker import CloudContext
from azure_blob_broker.providers.azure_provider import AzureStorageClient


def _http_error(status_code, reason, code=None, message="Request failed"):
    error = HttpResponseError(message=message)
    error.status_code = status_code
    error.reason = reason
    error.error = Mock(code=code) if code else None
    return error


class TestAzureStorageClient:
    """Test the Azure management SDK adapter."""

    @pytest.fixture
    def sdk(self):
        """Patch the Azure SDK clients."""
        with patch('azure_blob_broker.providers.azure_provider.ClientSecretCredential') as credential, \
                patch('azure_blob_broker.providers.azure_provider.ResourceManagementClient') as resource, \
                patch('azure_blob_broker.providers.azure_provider.StorageManagementClient') as storage:
            yield {
                'credential': credential,
                'resource': resource.return_value,
                'resource_class': resource,
                'storage': storage.return_value,
                'storage_class': storage,
            }

    @pytest.fixture
    def client(self, sdk, cloud):
        return AzureStorageClient(cloud)

    def test_unsupported_environment(self, sdk):
        with pytest.raises(ConfigurationError):
            AzureStorageClient(CloudContext(environment='AzureStack'))

    def test_china_cloud_endpoints(self, sdk, cloud):
        china = cloud.model_copy(update={'environment': 'AzureChinaCloud'})
        client = AzureStorageClient(china)

        client.storage_client

        assert client.resource_manager_url == 'https://management.chinacloudapi.cn'
        kwargs = sdk['storage_class'].call_args[1]
        assert kwargs['base_url'] == 'https://management.chinacloudapi.cn'
        assert sdk['credential'].call_args[1]['authority'] == client.authority

    def test_clients_are_created_lazily(self, sdk, client):
        sdk['storage_class'].assert_not_called()

        client.storage_client
        client.storage_client

        sdk['storage_class'].assert_called_once()

    def test_create_or_update_group(self, sdk, client):
        sdk['resource'].resource_groups.create_or_update.return_value = Mock(
            id='/subscriptions/sub-123/resourceGroups/rg-1',
            location='eastus',
            properties=Mock(provisioning_state='Succeeded')
        )

        result = client.create_or_update_group('rg-1', {'location': 'East US'})

        sdk['resource'].resource_groups.create_or_update.assert_called_once_with('rg-1', {'location': 'East US'})
        assert result == {
            'resourceGroupName': 'rg-1',
            'id': '/subscriptions/sub-123/resourceGroups/rg-1',
            'location': 'eastus',
            'provisioningState': 'Succeeded'
        }

    def test_create_or_update_account_does_not_wait(self, sdk, client):
        poller = sdk['storage'].storage_accounts.begin_create.return_value
        poller.status.return_value = 'InProgress'

        result = client.create_or_update_account('rg-1', 'account1', {'location': 'East US'})

        assert result == {'resourceGroupName': 'rg-1', 'storageAccountName': 'account1', 'status': 'InProgress'}
        poller.result.assert_not_called()

    def test_get_account_provisioning_state(self, sdk, client):
        sdk['storage'].storage_accounts.get_properties.return_value = Mock(
            provisioning_state=Mock(value='ResolvingDNS')
        )

        assert client.get_account_provisioning_state('rg-1', 'account1') == 'ResolvingDNS'

    def test_not_found_becomes_backend_error(self, sdk, client):
        sdk['storage'].storage_accounts.get_properties.side_effect = _http_error(
            404, 'Not Found', code='ResourceNotFound', message='The Resource was not found'
        )

        with pytest.raises(BackendError) as exc_info:
            client.get_account_provisioning_state('rg-1', 'account1')

        assert exc_info.value.status_code == 404
        assert exc_info.value.code == 'ResourceNotFound'
        assert exc_info.value.message == 'The Resource was not found'
        assert exc_info.value.is_not_found

    def test_error_without_code_uses_reason(self, sdk, client):
        sdk['storage'].storage_accounts.delete.side_effect = _http_error(409, 'Conflict')

        with pytest.raises(BackendError) as exc_info:
            client.delete_account('rg-1', 'account1')

        assert exc_info.value.code == 'Conflict'

    def test_error_without_status_becomes_generic(self, sdk, client):
        sdk['storage'].storage_accounts.delete.side_effect = ServiceRequestError("Name resolution failed")

        with pytest.raises(GenericError):
            client.delete_account('rg-1', 'account1')

    def test_list_access_keys(self, sdk, client):
        sdk['storage'].storage_accounts.list_keys.return_value = Mock(keys=[Mock(value='k1'), Mock(value='k2')])

        keys = client.list_access_keys('rg-1', 'account1')

        assert keys.primary == 'k1'
        assert keys.secondary == 'k2'

    def test_list_access_keys_single_key(self, sdk, client):
        sdk['storage'].storage_accounts.list_keys.return_value = Mock(keys=[Mock(value='k1')])

        keys = client.list_access_keys('rg-1', 'account1')

        assert keys.secondary is None

    def test_list_access_keys_empty(self, sdk, client):
        sdk['storage'].storage_accounts.list_keys.return_value = Mock(keys=[])

        with pytest.raises(GenericError):
            client.list_access_keys('rg-1', 'account1')

    def test_create_container(self, sdk, client):
        client.create_container('rg-1', 'account1', 'uploads')

        sdk['storage'].blob_containers.create.assert_called_once_with('rg-1', 'account1', 'uploads', {})

    def test_create_existing_container(self, sdk, client):
        sdk['storage'].blob_containers.create.side_effect = ResourceExistsError(message='ContainerAlreadyExists')

        client.create_container('rg-1', 'account1', 'uploads')

    def test_create_container_failure(self, sdk, client):
        sdk['storage'].blob_containers.create.side_effect = _http_error(
            400, 'Bad Request', code='ContainerOperationFailure'
        )

        with pytest.raises(BackendError) as exc_info:
            client.create_container('rg-1', 'account1', 'Bad_Name')

        assert exc_info.value.code == 'ContainerOperationFailure'

    def test_delete_container(self, sdk, client):
        client.delete_container('rg-1', 'account1', 'uploads')

        sdk['storage'].blob_containers.delete.assert_called_once_with('rg-1', 'account1', 'uploads')
