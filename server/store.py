"""
In-memory registry of display surfaces.

One RenderSessionController per surface id, created on first use.
Uses an asyncio.Event to notify SSE listeners of changes (zero polling):
every submit, removal and settle bumps the version counter.
"""

import asyncio
from typing import Any, Dict, Optional

from diagram_repair.kinds import DiagramKind
from diagram_repair.session import RenderCallable, RenderSessionController, Settled


class SurfaceStore:
    def __init__(self, render: RenderCallable, timeout: Optional[float] = None):
        self._render = render
        self._timeout = timeout
        self._surfaces: Dict[str, RenderSessionController] = {}
        self._versions: Dict[str, int] = {}
        self._version = 0
        self._event: Optional[asyncio.Event] = None

    def _notify(self, surface_id: str) -> None:
        """Bump version and wake any SSE listeners."""
        self._version += 1
        self._versions[surface_id] = self._version
        if self._event is not None:
            self._event.set()

    @property
    def version(self) -> int:
        return self._version

    def surface_version(self, surface_id: str) -> int:
        return self._versions.get(surface_id, 0)

    async def wait_for_change(self, since_version: int) -> int:
        """Block until the store version exceeds *since_version*. Returns new version."""
        if self._event is None:
            self._event = asyncio.Event()
        while self._version <= since_version:
            self._event.clear()
            await self._event.wait()
        return self._version

    def get(self, surface_id: str) -> Optional[RenderSessionController]:
        return self._surfaces.get(surface_id)

    def get_or_create(self, surface_id: str) -> RenderSessionController:
        controller = self._surfaces.get(surface_id)
        if controller is None:
            def on_settled(_state: Settled) -> None:
                if self._surfaces.get(surface_id) is controller:
                    self._notify(surface_id)

            controller = RenderSessionController(
                self._render,
                on_settled=on_settled,
                timeout=self._timeout,
                name=surface_id,
            )
            self._surfaces[surface_id] = controller
        return controller

    def submit(self, surface_id: str, text: str, kind: Optional[DiagramKind] = None) -> int:
        """Start a render on *surface_id*. Returns the issued token."""
        controller = self.get_or_create(surface_id)
        controller.submit(text, kind)
        self._notify(surface_id)
        return controller.token

    def remove(self, surface_id: str) -> Optional[Dict[str, Any]]:
        """Cancel and forget *surface_id*. Returns its final snapshot, None if unknown."""
        controller = self._surfaces.get(surface_id)
        if controller is None:
            return None
        controller.cancel()
        self._notify(surface_id)
        final = self.snapshot(surface_id)
        del self._surfaces[surface_id]
        self._versions.pop(surface_id, None)
        return final

    def cancel_all(self) -> int:
        """Cancel every surface. Returns count of surfaces cancelled."""
        for controller in self._surfaces.values():
            controller.cancel()
        count = len(self._surfaces)
        if count:
            self._version += 1
            if self._event is not None:
                self._event.set()
        return count

    def snapshot(self, surface_id: str) -> Optional[Dict[str, Any]]:
        controller = self._surfaces.get(surface_id)
        if controller is None:
            return None
        entry = controller.state.to_dict()
        entry["surface_id"] = surface_id
        entry["latest_token"] = controller.token
        entry["version"] = self.surface_version(surface_id)
        return entry

    def list_surfaces(self) -> Dict[str, Dict[str, Any]]:
        return {sid: self.snapshot(sid) for sid in self._surfaces}
