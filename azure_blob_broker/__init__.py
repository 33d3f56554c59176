"""
Azure Storage Blob service broker

Open Service Broker plugin that provisions an Azure storage account per
service instance and a blob container per binding.
"""

__version__ = "0.1.0"
__author__ = "azure-blob-broker"
