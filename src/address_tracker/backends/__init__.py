"""
Address data source implementations.

Available backends:
- EsploraBackend: Esplora REST API (mempool.space, blockstream.info, self-hosted)
"""

from address_tracker.backends.base import AddressDataSource
from address_tracker.backends.esplora import EsploraBackend, default_api_url

__all__ = [
    "AddressDataSource",
    "EsploraBackend",
    "default_api_url",
]
