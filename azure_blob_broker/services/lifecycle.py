"""Lifecycle handlers for Azure Storage Blob service instances.

Provision and deprovision only issue the backend operation and return; the
broker runtime observes completion by calling ``poll`` until it reports a
terminal state. The provisioning result returned by ``provision`` is the
only state carried between calls.
"""

import asyncio
import inspect
import logging
from dataclasses import asdict, dataclass
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional, Union

from azure_blob_broker.config import BrokerDefaults, config
from azure_blob_broker.exceptions import BackendError, UnknownOperationError
from azure_blob_broker.logging_config import audit_logger
from azure_blob_broker.models.factory import ServiceBrokerFactory
from azure_blob_broker.models.service_broker import (
    BindResponse, CloudContext, Credentials, HandlerRequest, LastOperation, LastOperationResponse,
    OperationState, ProvisioningResult, ServiceError, ServiceReply
)
from azure_blob_broker.providers.azure_provider import AzureStorageClient
from azure_blob_broker.providers.base import StorageResourceClient
from azure_blob_broker.services.naming import (
    ResourceNameSet, build_account_parameters, derive_container_name, derive_resource_names
)
from azure_blob_broker.utils.error_handlers import normalize_error

logger = logging.getLogger(__name__)

ClientFactory = Callable[[CloudContext], StorageResourceClient]

CREATING_STATES = ('Creating', 'ResolvingDNS')
SUCCEEDED_STATE = 'Succeeded'
FAILED_STATE = 'Failed'


@dataclass
class HandlerResult:
    """Outcome of one handler call."""
    reply: Optional[ServiceReply] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[ServiceError] = None
    resource_names: Optional[ResourceNameSet] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def map_provisioning_state(state: Optional[str]) -> OperationState:
    """Map a storage account provisioning state onto the broker vocabulary."""
    if state in CREATING_STATES:
        return OperationState.IN_PROGRESS
    if state == SUCCEEDED_STATE:
        return OperationState.SUCCEEDED
    if state == FAILED_STATE:
        return OperationState.FAILED

    logger.warning(f"Unmapped storage account provisioning state: {state}")
    return OperationState.IN_PROGRESS


def _reply(status: HTTPStatus, value: Optional[Dict[str, Any]] = None) -> ServiceReply:
    return ServiceReply(statusCode=status.value, code=status.phrase, value=value or {})


class LifecycleOrchestrator:
    """Drives storage accounts and containers through their lifecycle."""

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        defaults: Optional[BrokerDefaults] = None,
        default_cloud: Optional[CloudContext] = None
    ):
        """Initialize the orchestrator.

        Args:
            client_factory: Builds a backend client for a cloud context
            defaults: Naming and placement defaults
            default_cloud: Cloud context used when a call carries none
        """
        self.client_factory = client_factory or AzureStorageClient
        self.defaults = defaults or config.defaults
        self.default_cloud = default_cloud or CloudContext(**asdict(config.azure))

    async def _call_backend(self, func: Callable, *args):
        """Run a backend call without blocking the event loop."""
        if inspect.iscoroutinefunction(func):
            return await func(*args)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _client(self, cloud: Optional[CloudContext]) -> StorageResourceClient:
        return self.client_factory(cloud or self.default_cloud)

    def _failure(self, operation: str, instance_id: Optional[str], error: Exception) -> HandlerResult:
        service_error = normalize_error(error)
        logger.error(f"{operation} failed for instance {instance_id}: {service_error.model_dump()}")
        audit_logger.log_lifecycle(instance_id, f"{operation}_failed", service_error.model_dump())
        return HandlerResult(error=service_error)

    @staticmethod
    def _last_operation(value: Union[LastOperation, str, None]) -> LastOperation:
        try:
            return LastOperation(value)
        except ValueError:
            raise UnknownOperationError(value)

    async def catalog(self) -> HandlerResult:
        """Return the static service offering."""
        catalog = ServiceBrokerFactory.create_catalog()
        return HandlerResult(reply=_reply(HTTPStatus.OK, catalog.model_dump(exclude_none=True)))

    async def provision(
        self,
        instance_id: str,
        parameters: Optional[Dict[str, Any]] = None,
        cloud: Optional[CloudContext] = None
    ) -> HandlerResult:
        """Start creating the resource group and storage account of an instance."""
        logger.debug(f"Provision params: instance_id={instance_id}, parameters={parameters}")
        cloud = cloud or self.default_cloud

        try:
            names = derive_resource_names(instance_id, parameters, cloud.environment, self.defaults)
            account_parameters = build_account_parameters(names, parameters, self.defaults)
            client = self._client(cloud)

            audit_logger.log_lifecycle(instance_id, "provision_start", asdict(names))

            # The group must exist before the account create is issued
            group_result = await self._call_backend(
                client.create_or_update_group,
                names.resource_group_name,
                {'location': names.location}
            )
            account_result = await self._call_backend(
                client.create_or_update_account,
                names.resource_group_name,
                names.storage_account_name,
                account_parameters
            )
        except Exception as e:
            return self._failure("provision", instance_id, e)

        token = ProvisioningResult(
            resourceGroupResult={'resourceGroupName': names.resource_group_name, **(group_result or {})},
            storageAccountResult={
                'resourceGroupName': names.resource_group_name,
                'storageAccountName': names.storage_account_name,
                **(account_result or {})
            }
        )

        audit_logger.log_lifecycle(instance_id, "provision_accepted", {
            "resource_group_name": names.resource_group_name,
            "storage_account_name": names.storage_account_name
        })
        logger.info(f"Accepted provisioning of storage account {names.storage_account_name} for {instance_id}")

        return HandlerResult(
            reply=_reply(HTTPStatus.ACCEPTED),
            result=token.model_dump(),
            resource_names=names
        )

    async def poll(
        self,
        instance_id: Optional[str],
        provisioning_result: Any,
        last_operation: Union[LastOperation, str],
        cloud: Optional[CloudContext] = None
    ) -> HandlerResult:
        """Report the state of the last provision or deprovision."""
        logger.debug(f"Poll params: instance_id={instance_id}, last_operation={last_operation}")

        try:
            token = ProvisioningResult.parse(provisioning_result)
            last_operation = self._last_operation(last_operation)
            resource_group_name = token.resource_group_name
            storage_account_name = token.storage_account_name
            client = self._client(cloud)
        except Exception as e:
            return self._failure("poll", instance_id, e)

        if last_operation is LastOperation.PROVISION:
            try:
                state = await self._call_backend(
                    client.get_account_provisioning_state,
                    resource_group_name,
                    storage_account_name
                )
            except Exception as e:
                return self._failure("poll", instance_id, e)

            logger.info(f"Provisioning state of storage account {storage_account_name}: {state}")
            operation_state = map_provisioning_state(state)
            description = f"Creating the storage account, state: {state}"
        else:
            # The account disappearing is what marks the delete as finished
            try:
                await self._call_backend(
                    client.get_account_provisioning_state,
                    resource_group_name,
                    storage_account_name
                )
                operation_state = OperationState.IN_PROGRESS
            except BackendError as e:
                if not e.is_not_found:
                    return self._failure("poll", instance_id, e)
                operation_state = OperationState.SUCCEEDED
            except Exception as e:
                return self._failure("poll", instance_id, e)

            description = "Deleting the storage account"

        response = LastOperationResponse(state=operation_state.value, description=description)
        return HandlerResult(
            reply=_reply(HTTPStatus.OK, response.model_dump()),
            result=token.model_dump()
        )

    async def deprovision(
        self,
        instance_id: Optional[str],
        provisioning_result: Any,
        cloud: Optional[CloudContext] = None
    ) -> HandlerResult:
        """Start deleting the storage account of an instance.

        The resource group is left in place.
        """
        logger.debug(f"Deprovision params: instance_id={instance_id}")

        try:
            token = ProvisioningResult.parse(provisioning_result)
            resource_group_name = token.resource_group_name
            storage_account_name = token.storage_account_name
            client = self._client(cloud)
        except Exception as e:
            return self._failure("deprovision", instance_id, e)

        try:
            await self._call_backend(client.delete_account, resource_group_name, storage_account_name)
        except BackendError as e:
            if not e.is_not_found:
                return self._failure("deprovision", instance_id, e)
            logger.info(f"Storage account {storage_account_name} is already gone")
        except Exception as e:
            return self._failure("deprovision", instance_id, e)

        audit_logger.log_lifecycle(instance_id, "deprovision_accepted", {
            "resource_group_name": resource_group_name,
            "storage_account_name": storage_account_name
        })

        return HandlerResult(reply=_reply(HTTPStatus.ACCEPTED), result=token.model_dump())

    async def bind(
        self,
        instance_id: str,
        provisioning_result: Any,
        parameters: Optional[Dict[str, Any]] = None,
        cloud: Optional[CloudContext] = None
    ) -> HandlerResult:
        """Create the binding container and hand out the account keys."""
        logger.debug(f"Bind params: instance_id={instance_id}, parameters={parameters}")

        try:
            container_name = derive_container_name(instance_id, parameters, self.defaults)
            token = ProvisioningResult.parse(provisioning_result)
            resource_group_name = token.resource_group_name
            storage_account_name = token.storage_account_name
            client = self._client(cloud)

            await self._call_backend(client.create_container, resource_group_name, storage_account_name, container_name)
            keys = await self._call_backend(client.list_access_keys, resource_group_name, storage_account_name)
        except Exception as e:
            return self._failure("bind", instance_id, e)

        credentials = Credentials(
            storage_account_name=storage_account_name,
            container_name=container_name,
            primary_access_key=keys.primary,
            secondary_access_key=keys.secondary
        )

        audit_logger.log_lifecycle(instance_id, "bind_created", {
            "storage_account_name": storage_account_name,
            "container_name": container_name
        })

        return HandlerResult(
            reply=_reply(HTTPStatus.CREATED, BindResponse(credentials=credentials).model_dump()),
            result={}
        )

    async def unbind(
        self,
        instance_id: str,
        provisioning_result: Any,
        parameters: Optional[Dict[str, Any]] = None,
        cloud: Optional[CloudContext] = None
    ) -> HandlerResult:
        """Delete the binding container."""
        logger.debug(f"Unbind params: instance_id={instance_id}, parameters={parameters}")

        try:
            container_name = derive_container_name(instance_id, parameters, self.defaults)
            token = ProvisioningResult.parse(provisioning_result)
            resource_group_name = token.resource_group_name
            storage_account_name = token.storage_account_name
            client = self._client(cloud)

            await self._call_backend(client.delete_container, resource_group_name, storage_account_name, container_name)
        except Exception as e:
            return self._failure("unbind", instance_id, e)

        audit_logger.log_lifecycle(instance_id, "unbind_completed", {
            "storage_account_name": storage_account_name,
            "container_name": container_name
        })

        return HandlerResult(reply=_reply(HTTPStatus.OK), result={})

    async def handle(self, operation: str, request: Union[HandlerRequest, Dict[str, Any]]) -> HandlerResult:
        """Dispatch a broker runtime call by operation name."""
        try:
            if not isinstance(request, HandlerRequest):
                request = HandlerRequest.model_validate(request)
        except Exception as e:
            return self._failure(operation, None, e)

        if operation == 'catalog':
            return await self.catalog()
        if operation == 'provision':
            return await self.provision(request.instance_id, request.parameters, request.azure)
        if operation == 'poll':
            return await self.poll(
                request.instance_id, request.provisioning_result, request.last_operation, request.azure
            )
        if operation == 'deprovision':
            return await self.deprovision(request.instance_id, request.provisioning_result, request.azure)
        if operation == 'bind':
            return await self.bind(
                request.instance_id, request.provisioning_result, request.parameters, request.azure
            )
        if operation == 'unbind':
            return await self.unbind(
                request.instance_id, request.provisioning_result, request.parameters, request.azure
            )

        return self._failure(operation, request.instance_id, UnknownOperationError(operation))
