"""Bus layer — tagged values, proxy handles, change notifiers, cancellation.

The bus layer may import from domain only. The dbus-fast transport lives
in :mod:`agamactl.bus.dbus`; :mod:`agamactl.bus.memory` provides the
in-memory stand-in used by tests and offline runs.
"""

from agamactl.bus.cancellable import CancellationScope, CancellationToken, wrap
from agamactl.bus.connection import Connection
from agamactl.bus.handle import PROPERTIES_CHANGED, ProxyHandle
from agamactl.bus.notifier import ChangeNotifier, SignalError
from agamactl.bus.variant import TaggedValue, decode, lift

__all__ = [
    "PROPERTIES_CHANGED",
    "CancellationScope",
    "CancellationToken",
    "ChangeNotifier",
    "Connection",
    "ProxyHandle",
    "SignalError",
    "TaggedValue",
    "decode",
    "lift",
    "wrap",
]
