"""Open Service Broker API data models and the plugin handler contract."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from azure_blob_broker.exceptions import InvalidProvisioningResultError


class LastOperation(str, Enum):
    """Lifecycle phase a poll call is checking on."""
    PROVISION = "provision"
    DEPROVISION = "deprovision"


class OperationState(str, Enum):
    """Broker-visible state of a long-running operation."""
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Catalog

class ServicePlanMetadata(BaseModel):
    """Service plan metadata."""
    displayName: Optional[str] = None
    bullets: Optional[List[str]] = None
    costs: Optional[List[Dict[str, Any]]] = None


class ServicePlan(BaseModel):
    """Service plan definition."""
    id: str = Field(..., description="Unique identifier for the service plan")
    name: str = Field(..., description="Human-readable name for the service plan")
    description: str = Field(..., description="Description of the service plan")
    free: bool = Field(default=True, description="Whether the plan is free")
    bindable: bool = Field(default=True, description="Whether the plan supports binding")
    metadata: Optional[ServicePlanMetadata] = None


class ServiceMetadata(BaseModel):
    """Service metadata."""
    displayName: Optional[str] = None
    imageUrl: Optional[str] = None
    longDescription: Optional[str] = None
    providerDisplayName: Optional[str] = None
    documentationUrl: Optional[str] = None
    supportUrl: Optional[str] = None


class Service(BaseModel):
    """Service definition for catalog."""
    id: str = Field(..., description="Unique identifier for the service")
    name: str = Field(..., description="Human-readable name for the service")
    description: str = Field(..., description="Description of the service")
    bindable: bool = Field(default=True, description="Whether the service supports binding")
    plan_updateable: bool = Field(default=False, description="Whether the service supports plan updates")
    plans: List[ServicePlan] = Field(..., description="List of service plans")
    tags: Optional[List[str]] = None
    metadata: Optional[ServiceMetadata] = None
    requires: Optional[List[str]] = None


class Catalog(BaseModel):
    """Service catalog response."""
    services: List[Service] = Field(..., description="List of available services")


# Plugin contract

class CloudContext(BaseModel):
    """Azure environment and service principal a handler call runs against."""
    environment: str = "AzureCloud"
    subscription_id: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)


class ProvisioningResult(BaseModel):
    """Opaque continuation token produced by provision.

    Callers hand it back verbatim on every poll, deprovision, bind and
    unbind call. Only the two raw backend results are relied upon; any other
    field is carried through untouched.
    """
    model_config = ConfigDict(extra='allow')

    resourceGroupResult: Dict[str, Any]
    storageAccountResult: Dict[str, Any]

    @classmethod
    def parse(cls, raw: Union[str, bytes, Dict[str, Any], 'ProvisioningResult', None]) -> 'ProvisioningResult':
        """Read a token from its JSON text or decoded mapping."""
        if isinstance(raw, ProvisioningResult):
            return raw
        if raw is None or raw == '':
            raise InvalidProvisioningResultError("Provisioning result is required")

        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise InvalidProvisioningResultError(f"Provisioning result is not valid JSON: {e}")

        if not isinstance(raw, dict):
            raise InvalidProvisioningResultError("Provisioning result must be a JSON object")

        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise InvalidProvisioningResultError(f"Invalid provisioning result: {e}")

    @property
    def resource_group_name(self) -> str:
        name = self.resourceGroupResult.get('resourceGroupName')
        if not name:
            raise InvalidProvisioningResultError(
                "Provisioning result has no resource group name",
                field='resourceGroupResult.resourceGroupName'
            )
        return name

    @property
    def storage_account_name(self) -> str:
        name = self.storageAccountResult.get('storageAccountName')
        if not name:
            raise InvalidProvisioningResultError(
                "Provisioning result has no storage account name",
                field='storageAccountResult.storageAccountName'
            )
        return name


class HandlerRequest(BaseModel):
    """Input of one handler invocation as dispatched by a broker runtime."""
    instance_id: Optional[str] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    last_operation: Optional[LastOperation] = None
    provisioning_result: Optional[Any] = None
    azure: Optional[CloudContext] = None

    @field_validator('parameters', mode='before')
    @classmethod
    def default_parameters(cls, v):
        return v or {}


class Credentials(BaseModel):
    """Binding credentials handed to the consuming application."""
    storage_account_name: str
    container_name: str
    primary_access_key: str
    secondary_access_key: Optional[str] = None


class ServiceReply(BaseModel):
    """Successful handler reply."""
    statusCode: int
    code: str
    value: Dict[str, Any] = Field(default_factory=dict)


class ServiceError(BaseModel):
    """Uniform error record surfaced to the broker runtime."""
    statusCode: int
    code: str
    description: str


# Open Service Broker requests and responses

class ProvisionRequest(BaseModel):
    """Service instance provisioning request."""
    service_id: str = Field(..., description="ID of the service being provisioned")
    plan_id: str = Field(..., description="ID of the plan being provisioned")
    context: Optional[Dict[str, Any]] = None
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None

    @field_validator('parameters')
    @classmethod
    def validate_parameters(cls, v):
        """Validate provisioning parameters."""
        if v is None:
            return {}

        for key in ('resource_group_name', 'storage_account_name', 'location', 'account_type'):
            if key in v and not isinstance(v[key], str):
                raise ValueError(f"{key} must be a string")

        if 'parameters' in v and not isinstance(v['parameters'], dict):
            raise ValueError("parameters.parameters must be an object")

        return v


class BindRequest(BaseModel):
    """Service binding request."""
    service_id: str = Field(..., description="ID of the service")
    plan_id: str = Field(..., description="ID of the plan")
    app_guid: Optional[str] = None
    bind_resource: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None
    parameters: Optional[Dict[str, Any]] = None

    @field_validator('parameters')
    @classmethod
    def validate_parameters(cls, v):
        if v is None:
            return {}
        if 'container_name' in v and not isinstance(v['container_name'], str):
            raise ValueError("container_name must be a string")
        return v


class ProvisionResponse(BaseModel):
    """Service instance provisioning response."""
    dashboard_url: Optional[str] = None
    operation: Optional[str] = None


class DeprovisionResponse(BaseModel):
    """Service instance deprovisioning response."""
    operation: Optional[str] = None


class LastOperationResponse(BaseModel):
    """Last operation status response."""
    state: str = Field(..., description="State of the operation")
    description: Optional[str] = None

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        """Validate operation state."""
        valid_states = [s.value for s in OperationState]
        if v not in valid_states:
            raise ValueError(f"state must be one of {valid_states}")
        return v


class BindResponse(BaseModel):
    """Service binding response."""
    credentials: Credentials


class ErrorResponse(BaseModel):
    """Error response."""
    error: str = Field(..., description="Error code")
    description: str = Field(..., description="Error description")
    instance_usable: Optional[bool] = None
    update_repeatable: Optional[bool] = None
