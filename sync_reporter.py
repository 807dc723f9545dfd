# ============================================================================
#  sync_reporter.py — Sync Session Progress Reporting
#  Version: 2.0.0
#  CHANGES: Session events rendered as operator-facing progress lines
# ============================================================================
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
WOULD_CREATE = "would create"
WOULD_UPDATE = "would update"


@dataclass(frozen=True)
class SessionStarted:
    vendor_name: str
    product_count: int


@dataclass(frozen=True)
class CatalogFetched:
    product_count: int


@dataclass(frozen=True)
class ProductSynced:
    title: str
    action: str
    product_id: Optional[Union[int, str]] = None


@dataclass(frozen=True)
class ProductFailed:
    title: str
    reason: str


@dataclass(frozen=True)
class SessionCompleted:
    vendor_name: str
    created: int = 0
    updated: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated + len(self.failed)


@dataclass(frozen=True)
class SessionAborted:
    reason: str


SyncEvent = Union[SessionStarted, CatalogFetched, ProductSynced, ProductFailed,
                  SessionCompleted, SessionAborted]
TerminalEvent = Union[SessionCompleted, SessionAborted]


class SyncReporter:
    """Renders session events as free-text lines for the operator."""

    def format_event(self, event: SyncEvent) -> str:
        if isinstance(event, SessionStarted):
            return f"Starting sync of {event.product_count} product(s) for vendor: {event.vendor_name}"
        if isinstance(event, CatalogFetched):
            return f"Fetched {event.product_count} product(s) from the main store."
        if isinstance(event, ProductSynced):
            suffix = f" (ID: {event.product_id})" if event.product_id is not None else ""
            return f"{event.action.capitalize()} product: {event.title}{suffix}"
        if isinstance(event, ProductFailed):
            return f'--> Failed to sync product: "{event.title}". Reason: {event.reason}'
        if isinstance(event, SessionCompleted):
            line = (f"Sync complete for {event.vendor_name}: {event.created} created, "
                    f"{event.updated} updated, {len(event.failed)} failed.")
            if event.failed:
                line += " Failed: " + ", ".join(f'"{t}"' for t in event.failed)
            return line
        if isinstance(event, SessionAborted):
            return f"Sync failed: {event.reason}"
        raise TypeError(f"Unknown sync event: {event!r}")

    def stream_lines(self, events: Iterable[SyncEvent]) -> Iterator[str]:
        """Yields one newline-terminated line per event as soon as it is produced."""
        for event in events:
            yield self.format_event(event) + "\n"

    def deliver(self, events: Iterable[SyncEvent],
                sink: Callable[[str], None]) -> Optional[TerminalEvent]:
        """Pushes each line to the sink and returns the terminal event of the session."""
        terminal = None
        for event in events:
            sink(self.format_event(event))
            if isinstance(event, (SessionCompleted, SessionAborted)):
                terminal = event
        return terminal
# ============================================================================
# End of sync_reporter.py — Version: 2.0.0
# ============================================================================
