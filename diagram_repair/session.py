"""
Render session controller, one per display surface.

Each submit runs the repair pipeline and hands the resulting text to an
external asynchronous render callable.  Every render attempt carries a
token from a monotonically increasing counter; a result is applied only
if its token is still the latest one when the call completes.  A later
submit or cancel therefore supersedes anything in flight without having
to abort it.

On a render failure that is still current, the controller retries once
with the fallback diagram for the same kind under a fresh token.  A second
failure settles with an error outcome.

The token counter is the only state shared across attempts.  There are no
locks: every transition happens on the event loop between awaits.
"""

import asyncio
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Set, Union

from diagram_repair import config
from diagram_repair.errors import RenderError, RenderTimeoutError
from diagram_repair.fallback import fallback
from diagram_repair.kinds import DiagramKind
from diagram_repair.pipeline import process


RenderCallable = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class RenderOutcome:
    token: int
    ok: bool
    text: str
    kind: DiagramKind
    artifact: Any = None
    error: Optional[str] = None
    used_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            'token': self.token,
            'ok': self.ok,
            'text': self.text,
            'kind': self.kind.value,
            'artifact': self.artifact,
            'error': self.error,
            'used_fallback': self.used_fallback,
        }


@dataclass(frozen=True)
class Idle:
    def to_dict(self) -> dict:
        return {'state': 'idle'}


@dataclass(frozen=True)
class Rendering:
    token: int

    def to_dict(self) -> dict:
        return {'state': 'rendering', 'token': self.token}


@dataclass(frozen=True)
class Settled:
    token: int
    outcome: RenderOutcome

    def to_dict(self) -> dict:
        return {'state': 'settled', 'token': self.token, 'outcome': self.outcome.to_dict()}


SessionState = Union[Idle, Rendering, Settled]


class RenderSessionController:
    def __init__(
        self,
        render: RenderCallable,
        on_settled: Optional[Callable[[Settled], None]] = None,
        timeout: Optional[float] = None,
        name: str = 'surface',
    ):
        self._render = render
        self._on_settled = on_settled
        self._timeout = config.RENDER_TIMEOUT if timeout is None else timeout
        self._name = name
        self._token = 0
        self._state: SessionState = Idle()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def token(self) -> int:
        """Latest issued token."""
        return self._token

    @property
    def state(self) -> SessionState:
        return self._state

    def _issue(self) -> int:
        self._token += 1
        self._state = Rendering(self._token)
        return self._token

    def _is_current(self, token: int) -> bool:
        return token == self._token

    # ── Public API ─────────────────────────────────────────────────

    def submit(self, text: str, kind: Optional[DiagramKind] = None) -> 'asyncio.Task[Optional[RenderOutcome]]':
        """Start a render for *text*.  Must be called from a running event loop.

        The returned task resolves to the settled outcome, or None when the
        attempt was superseded before it settled.
        """
        token = self._issue()
        task = asyncio.ensure_future(self._run(token, text, kind))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self) -> None:
        """Supersede whatever is in flight without starting a new render."""
        self._token += 1
        self._state = Idle()

    # ── Internals ──────────────────────────────────────────────────

    async def _call(self, text: str) -> Any:
        try:
            if self._timeout and self._timeout > 0:
                return await asyncio.wait_for(self._render(text), timeout=self._timeout)
            return await self._render(text)
        except asyncio.TimeoutError as exc:
            raise RenderTimeoutError(f"Render timed out after {self._timeout:g}s", text) from exc
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(str(exc) or exc.__class__.__name__, text) from exc

    def _settle(self, outcome: RenderOutcome) -> RenderOutcome:
        settled = Settled(outcome.token, outcome)
        self._state = settled
        if self._on_settled is not None:
            self._on_settled(settled)
        return outcome

    def _superseded(self, token: int) -> None:
        print(
            f"[render] {self._name}: discarding result for token {token} "
            f"(latest is {self._token})",
            file=sys.stderr,
        )

    async def _run(self, token: int, text: str, kind: Optional[DiagramKind]) -> Optional[RenderOutcome]:
        result = process(text, kind)

        try:
            artifact = await self._call(result.text)
        except RenderError as exc:
            if not self._is_current(token):
                self._superseded(token)
                return None
            print(f"[render] {self._name}: token {token} failed ({exc.message}), "
                  f"retrying with {result.kind.value} fallback", file=sys.stderr)
            return await self._retry(result.kind)

        if not self._is_current(token):
            self._superseded(token)
            return None
        return self._settle(RenderOutcome(
            token=token, ok=True, text=result.text, kind=result.kind,
            artifact=artifact, used_fallback=result.used_fallback,
        ))

    async def _retry(self, kind: DiagramKind) -> Optional[RenderOutcome]:
        token = self._issue()
        text = fallback(kind)

        try:
            artifact = await self._call(text)
        except RenderError as exc:
            if not self._is_current(token):
                self._superseded(token)
                return None
            print(f"[render] {self._name}: fallback render failed: {exc.message}", file=sys.stderr)
            return self._settle(RenderOutcome(
                token=token, ok=False, text=text, kind=kind,
                error=exc.message, used_fallback=True,
            ))

        if not self._is_current(token):
            self._superseded(token)
            return None
        return self._settle(RenderOutcome(
            token=token, ok=True, text=text, kind=kind,
            artifact=artifact, used_fallback=True,
        ))
