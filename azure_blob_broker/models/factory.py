"""Factory classes for catalog documents."""

from azure_blob_broker.models.service_broker import (
    Catalog, Service, ServiceMetadata, ServicePlan, ServicePlanMetadata
)


SERVICE_ID = "2e2fc314-37b6-4587-8127-8f9ee8b33fea"
SERVICE_NAME = "azurestorageblob"
DEFAULT_PLAN_ID = "6ddf6b41-fb60-4b70-af99-8ecc4896b3cf"


class ServiceBrokerFactory:
    """Factory for creating service broker objects."""

    @staticmethod
    def create_catalog() -> Catalog:
        """Create the service catalog."""
        default_plan = ServicePlan(
            id=DEFAULT_PLAN_ID,
            name="default",
            description="Creates a storage account and a blob container per binding",
            free=True,
            bindable=True,
            metadata=ServicePlanMetadata(
                displayName="Default",
                bullets=[
                    "One storage account per service instance",
                    "One blob container per binding",
                    "Primary and secondary access keys"
                ]
            )
        )

        service = Service(
            id=SERVICE_ID,
            name=SERVICE_NAME,
            description="Azure Storage Blob Service",
            bindable=True,
            plan_updateable=False,
            plans=[default_plan],
            tags=["Azure", "Storage", "Blob"],
            metadata=ServiceMetadata(
                displayName="Azure Storage Blob",
                longDescription="Provision an Azure storage account and bind blob containers to applications",
                providerDisplayName="Microsoft Azure",
                documentationUrl="https://learn.microsoft.com/azure/storage/blobs/",
                supportUrl="https://azure.microsoft.com/support/"
            )
        )

        return Catalog(services=[service])

    @staticmethod
    def plan_ids() -> set:
        catalog = ServiceBrokerFactory.create_catalog()
        return {plan.id for service in catalog.services for plan in service.plans}

    @staticmethod
    def service_ids() -> set:
        return {service.id for service in ServiceBrokerFactory.create_catalog().services}

