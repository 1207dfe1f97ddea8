from __future__ import annotations

from dbus_next.aio import MessageBus
from dbus_next.constants import BusType

from .linux import ProviderError

MUTTER_BUS_NAME = "org.gnome.Mutter.IdleMonitor"
MUTTER_OBJECT_PATH = "/org/gnome/Mutter/IdleMonitor/Core"
MUTTER_INTERFACE = "org.gnome.Mutter.IdleMonitor"


class MutterIdleProvider:
    """Idle seconds from GNOME Shell's idle monitor over the session bus.

    The bus connection and proxy are created on first use and reused.
    """

    def __init__(self):
        self._bus: MessageBus | None = None
        self._monitor = None

    async def __call__(self) -> float:
        return await self.idle_seconds()

    async def _get_monitor(self):
        if self._monitor is not None:
            return self._monitor

        bus = await MessageBus(bus_type=BusType.SESSION).connect()
        try:
            introspection = await bus.introspect(MUTTER_BUS_NAME, MUTTER_OBJECT_PATH)
        except Exception:
            bus.disconnect()
            raise
        obj = bus.get_proxy_object(MUTTER_BUS_NAME, MUTTER_OBJECT_PATH, introspection)

        self._bus = bus
        self._monitor = obj.get_interface(MUTTER_INTERFACE)
        return self._monitor

    async def idle_seconds(self) -> float:
        try:
            monitor = await self._get_monitor()
            idle_ms = await monitor.call_get_idletime()  # type: ignore[attr-defined]
        except Exception as exc:
            self.close()
            raise ProviderError(f"mutter idle monitor unavailable: {exc}") from exc

        return int(idle_ms) / 1000

    def close(self) -> None:
        bus = self._bus
        self._bus = None
        self._monitor = None
        if bus is not None:
            bus.disconnect()
