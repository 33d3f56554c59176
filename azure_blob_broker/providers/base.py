"""Abstract interface to the storage resource-management backend."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class AccessKeys:
    """Access keys of a storage account."""
    primary: str
    secondary: Optional[str] = None


class StorageResourceClient(ABC):
    """Abstract base class for resource-management backends.

    Long-running operations return as soon as the backend accepts them;
    completion is observed through ``get_account_provisioning_state``.
    Failures are raised as ``BackendError`` (with a status code) or
    ``GenericError`` (without one).
    """

    @abstractmethod
    def create_or_update_group(self, resource_group_name: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update a resource group and return its raw result."""
        pass

    @abstractmethod
    def create_or_update_account(
        self,
        resource_group_name: str,
        storage_account_name: str,
        parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Start creating a storage account and return the raw result."""
        pass

    @abstractmethod
    def get_account_provisioning_state(self, resource_group_name: str, storage_account_name: str) -> str:
        """Get the provisioning state string of a storage account."""
        pass

    @abstractmethod
    def delete_account(self, resource_group_name: str, storage_account_name: str) -> None:
        """Delete a storage account."""
        pass

    @abstractmethod
    def list_access_keys(self, resource_group_name: str, storage_account_name: str) -> AccessKeys:
        """List the access keys of a storage account."""
        pass

    @abstractmethod
    def create_container(self, resource_group_name: str, storage_account_name: str, container_name: str) -> None:
        """Create a blob container; an existing container is not an error."""
        pass

    @abstractmethod
    def delete_container(self, resource_group_name: str, storage_account_name: str, container_name: str) -> None:
        """Delete a blob container."""
        pass
