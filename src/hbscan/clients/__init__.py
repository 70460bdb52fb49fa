"""Remote directory service clients."""

from hbscan.clients.directory_client import DirectoryClient, FetchGateway

__all__ = [
    "DirectoryClient",
    "FetchGateway",
]
