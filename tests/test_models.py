"""Tests for data models."""

import json
import pytest
from pydantic import ValidationError

from azure_blob_broker.exceptions import InvalidProvisioningResultError
from azure_blob_broker.models.factory import (
    DEFAULT_PLAN_ID, SERVICE_ID, ServiceBrokerFactory
)
from azure_blob_broker.models.service_broker import (
    BindRequest, CloudContext, HandlerRequest, LastOperationResponse, ProvisionRequest, ProvisioningResult
)


class TestCatalog:
    """Test the static catalog."""

    def test_create_catalog(self):
        catalog = ServiceBrokerFactory.create_catalog()

        assert len(catalog.services) == 1
        service = catalog.services[0]
        assert service.id == SERVICE_ID
        assert service.name == 'azurestorageblob'
        assert service.description == 'Azure Storage Blob Service'
        assert service.bindable is True
        assert service.tags == ['Azure', 'Storage', 'Blob']
        assert [plan.name for plan in service.plans] == ['default']

    def test_ids(self):
        assert ServiceBrokerFactory.service_ids() == {SERVICE_ID}
        assert ServiceBrokerFactory.plan_ids() == {DEFAULT_PLAN_ID}


class TestProvisioningResult:
    """Test the provisioning result token."""

    def test_parse_json_text(self, provisioning_result):
        parsed = ProvisioningResult.parse(json.dumps(provisioning_result))

        assert parsed.resource_group_name == provisioning_result['resourceGroupResult']['resourceGroupName']
        assert parsed.storage_account_name == 'cfb9a3b1c24d5e6f708192a3'

    def test_parse_bytes(self, provisioning_result):
        parsed = ProvisioningResult.parse(json.dumps(provisioning_result).encode('utf-8'))

        assert parsed.storage_account_name == 'cfb9a3b1c24d5e6f708192a3'

    def test_parse_instance_is_returned(self, provisioning_result):
        token = ProvisioningResult.parse(provisioning_result)

        assert ProvisioningResult.parse(token) is token

    def test_extra_fields_survive(self):
        data = {
            'resourceGroupResult': {'resourceGroupName': 'rg-1'},
            'storageAccountResult': {'storageAccountName': 'account1', 'status': 'InProgress'},
            'platform': {'region': 'eu'}
        }

        token = ProvisioningResult.parse(data)

        assert token.model_dump() == data

    @pytest.mark.parametrize("raw", [None, '', '{broken', '"text"', 42])
    def test_parse_rejects(self, raw):
        with pytest.raises(InvalidProvisioningResultError):
            ProvisioningResult.parse(raw)

    def test_missing_result_field(self):
        with pytest.raises(InvalidProvisioningResultError):
            ProvisioningResult.parse(json.dumps({'resourceGroupResult': {'resourceGroupName': 'rg'}}))

    def test_missing_group_name(self):
        token = ProvisioningResult(resourceGroupResult={}, storageAccountResult={'storageAccountName': 'a'})

        with pytest.raises(InvalidProvisioningResultError) as exc_info:
            token.resource_group_name

        assert exc_info.value.details['field'] == 'resourceGroupResult.resourceGroupName'


class TestRequests:
    """Test request validation."""

    def test_provision_request(self):
        request = ProvisionRequest(
            service_id=SERVICE_ID,
            plan_id=DEFAULT_PLAN_ID,
            parameters={'location': 'West Europe'}
        )

        assert request.parameters == {'location': 'West Europe'}

    def test_provision_request_requires_ids(self):
        with pytest.raises(ValidationError):
            ProvisionRequest(plan_id=DEFAULT_PLAN_ID)

    def test_provision_request_rejects_non_string_name(self):
        with pytest.raises(ValidationError):
            ProvisionRequest(service_id=SERVICE_ID, plan_id=DEFAULT_PLAN_ID, parameters={'storage_account_name': 5})

    def test_provision_request_rejects_non_object_raw_parameters(self):
        with pytest.raises(ValidationError):
            ProvisionRequest(service_id=SERVICE_ID, plan_id=DEFAULT_PLAN_ID, parameters={'parameters': 'sku'})

    def test_bind_request_rejects_non_string_container(self):
        with pytest.raises(ValidationError):
            BindRequest(service_id=SERVICE_ID, plan_id=DEFAULT_PLAN_ID, parameters={'container_name': ['a']})

    def test_handler_request_defaults(self):
        request = HandlerRequest(instance_id='abc', parameters=None)

        assert request.parameters == {}
        assert request.azure is None

    def test_cloud_context_hides_secret(self):
        cloud = CloudContext(client_secret='super-secret')

        assert 'super-secret' not in repr(cloud)
        assert cloud.environment == 'AzureCloud'


class TestLastOperationResponse:
    """Test last operation response validation."""

    @pytest.mark.parametrize("state", ['in progress', 'succeeded', 'failed'])
    def test_valid_states(self, state):
        assert LastOperationResponse(state=state).state == state

    def test_invalid_state(self):
        with pytest.raises(ValidationError):
            LastOperationResponse(state='done')
