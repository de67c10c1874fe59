"""Clients layer — typed access to the installer's software, storage, manager, and iSCSI services.

Clients may import from bus, config, and domain.
"""

from agamactl.clients.installer import InstallerClient
from agamactl.clients.iscsi import ISCSIClient
from agamactl.clients.manager import ManagerClient
from agamactl.clients.software import SoftwareClient
from agamactl.clients.storage import StorageClient

__all__ = [
    "ISCSIClient",
    "InstallerClient",
    "ManagerClient",
    "SoftwareClient",
    "StorageClient",
]
