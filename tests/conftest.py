"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import Mock

from azure_blob_broker.config import BrokerDefaults
from azure_blob_broker.models.service_broker import CloudContext
from azure_blob_broker.providers.base import AccessKeys, StorageResourceClient
from azure_blob_broker.services.lifecycle import LifecycleOrchestrator

INSTANCE_ID = "b9a3b1c2-4d5e-6f70-8192-a3b4c5d6e7f8"


@pytest.fixture
def defaults():
    """Broker defaults independent of the environment."""
    return BrokerDefaults()


@pytest.fixture
def cloud():
    """Cloud context for the public Azure cloud."""
    return CloudContext(
        environment="AzureCloud",
        subscription_id="sub-123",
        tenant_id="tenant-123",
        client_id="client-123",
        client_secret="secret-123"
    )


@pytest.fixture
def mock_storage_client():
    """Mock storage backend with successful defaults."""
    client = Mock(spec=StorageResourceClient)
    client.create_or_update_group.return_value = {
        'id': '/subscriptions/sub-123/resourceGroups/rg',
        'location': 'East US',
        'provisioningState': 'Succeeded'
    }
    client.create_or_update_account.return_value = {'status': 'InProgress'}
    client.get_account_provisioning_state.return_value = 'Creating'
    client.delete_account.return_value = None
    client.list_access_keys.return_value = AccessKeys(primary='key-1', secondary='key-2')
    client.create_container.return_value = None
    client.delete_container.return_value = None
    return client


@pytest.fixture
def orchestrator(mock_storage_client, defaults, cloud):
    """Orchestrator wired to the mock backend."""
    return LifecycleOrchestrator(
        client_factory=lambda _cloud: mock_storage_client,
        defaults=defaults,
        default_cloud=cloud
    )


@pytest.fixture
def provisioning_result():
    """Token shaped like the one provision returns."""
    return {
        'resourceGroupResult': {
            'resourceGroupName': 'cloud-foundry-' + INSTANCE_ID,
            'location': 'East US'
        },
        'storageAccountResult': {
            'resourceGroupName': 'cloud-foundry-' + INSTANCE_ID,
            'storageAccountName': 'cfb9a3b1c24d5e6f708192a3',
            'status': 'InProgress'
        }
    }
