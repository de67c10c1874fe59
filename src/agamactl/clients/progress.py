"""Progress reporting shared by every service exposing the Progress1 interface.

The interface has ``TotalSteps`` (u), ``CurrentStep`` ((us): step number
and message) and ``Finished`` (b). Changes may carry any subset of them,
so change decoding re-reads the handle's bag, which is already updated
when observers are notified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agamactl.bus.notifier import property_changes
from agamactl.bus.variant import decode, decode_struct, expect
from agamactl.domain.snapshots import Progress

if TYPE_CHECKING:
    from agamactl.bus.handle import ProxyHandle, SignalArgs

PROGRESS_PROPERTIES = frozenset({"TotalSteps", "CurrentStep", "Finished"})


def progress_from(handle: ProxyHandle) -> Progress:
    """Build a Progress snapshot from a ready handle's property bag."""
    step = decode_struct(handle.get_property("CurrentStep"), ("current", "message"))
    return Progress(
        message=expect(step["message"], "CurrentStep.message", str),
        current=expect(step["current"], "CurrentStep.current", int),
        total=expect(decode(handle.get_property("TotalSteps")), "TotalSteps", int),
        finished=expect(decode(handle.get_property("Finished")), "Finished", bool),
    )


def progress_change(handle: ProxyHandle, args: SignalArgs) -> Progress | None:
    """Decode a PropertiesChanged signal into a Progress, or None if unrelated."""
    if not property_changes(args).keys() & PROGRESS_PROPERTIES:
        return None
    return progress_from(handle)
