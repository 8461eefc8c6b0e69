"""
Batched Renderer - incremental projection of saved sessions into views.

Large lists are rendered a batch of sessions at a time. After each batch,
if more remain, the renderer asks the UI for a continuation trigger (a
scroll-proximity watcher, a "load more" button, ...) and hands it a resume
callback. Firing the trigger renders exactly the next batch.

Only one trigger is ever live. Starting a new render detaches the old
trigger and bumps a generation counter, so a callback from a superseded
render does nothing.

Usage:
    renderer = BatchedRenderer(sink=view.add_session, trigger_factory=view.watch_scroll)
    renderer.render(tabs, metadata)     # first batch
    ...                                 # UI fires the trigger -> next batch
    renderer.cancel()                   # view closing
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from .dates import format_timestamp
from .models import SessionKey, TabRecord, group_sessions, session_name

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_PLACEHOLDER = "Session"


class ContinuationTrigger(Protocol):
    """
    Handle returned by a trigger factory.

    The factory must not invoke the resume callback before it returns;
    defer to the UI event loop instead.
    """

    def detach(self) -> None:
        ...


TriggerFactory = Callable[[Callable[[], None]], ContinuationTrigger]


@dataclass
class RenderedSession:
    """Display-ready view of one session."""
    key: SessionKey
    display_name: str
    custom_name: Optional[str]
    date_string: str
    timestamp: int
    tabs: list[TabRecord] = field(default_factory=list)
    grouped: bool = True

    @property
    def count(self) -> int:
        return len(self.tabs)

    @property
    def summary(self) -> str:
        """'Work (3 tabs) - 1/1/2024, 12:00:00 PM'"""
        return f"{self.display_name} ({self.count} tabs) - {self.date_string}"


def project_sessions(
    tabs: list[TabRecord],
    metadata: dict[str, str],
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> list[RenderedSession]:
    """Build views for every session, in storage order."""
    views = []
    for session in group_sessions(tabs):
        name = session_name(metadata, session.key)
        views.append(RenderedSession(
            key=session.key,
            display_name=name or placeholder,
            custom_name=name,
            date_string=format_timestamp(session.timestamp),
            timestamp=session.timestamp,
            tabs=list(session.tabs),
            grouped=session.grouped,
        ))
    return views


class BatchedRenderer:
    """
    Paginated producer over already-loaded sessions.

    Never touches storage: the caller reads the store once and passes the
    records to render().
    """

    def __init__(
        self,
        sink: Callable[[RenderedSession], None] = None,
        trigger_factory: TriggerFactory = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        placeholder: str = DEFAULT_PLACEHOLDER,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.sink = sink
        self.trigger_factory = trigger_factory
        self.batch_size = batch_size
        self.placeholder = placeholder

        self._views: list[RenderedSession] = []
        self._cursor = 0
        self._generation = 0
        self._trigger: Optional[ContinuationTrigger] = None
        self.total_tabs = 0

    # ── State ────────────────────────────────────────────────────────

    @property
    def has_more(self) -> bool:
        return self._cursor < len(self._views)

    @property
    def is_empty(self) -> bool:
        return not self._views

    @property
    def rendered_count(self) -> int:
        return min(self._cursor, len(self._views))

    @property
    def session_count(self) -> int:
        return len(self._views)

    @property
    def trigger_live(self) -> bool:
        return self._trigger is not None

    # ── Rendering ────────────────────────────────────────────────────

    def render(self, tabs: list[TabRecord], metadata: dict[str, str]) -> list[RenderedSession]:
        """Start over from fresh data and render the first batch."""
        self._detach_trigger()
        self._generation += 1
        self._views = project_sessions(tabs, metadata, self.placeholder)
        self._cursor = 0
        self.total_tabs = len(tabs)

        logger.debug(
            f"Render #{self._generation}: {len(self._views)} sessions, "
            f"{self.total_tabs} tabs, batch size {self.batch_size}"
        )
        return self._render_batch()

    def resume(self) -> list[RenderedSession]:
        """Render the next batch, if any."""
        self._detach_trigger()
        if not self.has_more:
            return []
        return self._render_batch()

    def cancel(self) -> None:
        """Stop: detach the live trigger and drop pending sessions."""
        self._detach_trigger()
        self._generation += 1
        self._cursor = len(self._views)

    dispose = cancel

    def _render_batch(self) -> list[RenderedSession]:
        batch = self._views[self._cursor:self._cursor + self.batch_size]
        self._cursor += len(batch)

        if self.sink is not None:
            for view in batch:
                self.sink(view)

        if self.has_more:
            self._install_trigger()
        return batch

    # ── Triggers ─────────────────────────────────────────────────────

    def _install_trigger(self) -> None:
        if self.trigger_factory is None:
            return

        generation = self._generation

        def _continue() -> None:
            if generation != self._generation:
                logger.debug(f"Ignoring stale continuation from render #{generation}")
                return
            self.resume()

        self._trigger = self.trigger_factory(_continue)

    def _detach_trigger(self) -> None:
        if self._trigger is not None:
            self._trigger.detach()
            self._trigger = None
