"""
Debounced knowledge audit.

The audit is the only timer-driven trigger in the system: every edit to the
facts or the industry re-arms a timer, and only an idle window of
AUDIT_DEBOUNCE_SECONDS after the *last* edit results in a backend call.

Ordering: every trigger bumps a generation counter.  A run whose generation
is no longer the latest when its result arrives is dropped, so the
suggestions shown always belong to the most recent input (last-write-wins,
never accumulated).

Usage
-----
    debounced = DebouncedAudit(KnowledgeAuditor(client))
    debounced.trigger(profile.facts, profile.industry)   # on every edit
    ...
    debounced.suggestions                                # latest accepted result

The app keeps one DebouncedAudit per profile in ``AuditRegistry``.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from app.config import settings
from app.services.knowledge_auditor import KnowledgeAuditor
from app.services.llm_client import GenerationClient

logger = logging.getLogger(__name__)


class DebounceTimer:
    """
    Cancellable, reschedulable one-shot timer on the running event loop.

    ``schedule`` replaces any pending callback; the callback fires at most
    once, *delay* seconds after the last ``schedule`` call.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handle = None
            callback()

        self._handle = loop.call_later(self.delay, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


@dataclasses.dataclass(frozen=True)
class AuditSnapshot:
    """Inputs captured at trigger time, tagged with their generation."""

    generation: int
    facts: Tuple[str, ...]
    industry: str


class DebouncedAudit:
    """Runs ``KnowledgeAuditor.audit_gaps`` behind a debounce timer."""

    def __init__(
        self,
        auditor: KnowledgeAuditor,
        delay: Optional[float] = None,
        on_result: Optional[Callable[[List[str]], None]] = None,
    ) -> None:
        self._auditor = auditor
        self._timer = DebounceTimer(
            settings.AUDIT_DEBOUNCE_SECONDS if delay is None else delay
        )
        self._on_result = on_result
        self._generation = 0
        self._inflight: Set[asyncio.Task] = set()

        self.suggestions: List[str] = []
        self.last_error: Optional[Exception] = None
        self.runs_started = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def trigger(self, facts: Sequence[str], industry: str) -> int:
        """
        Record a change to the facts or industry and re-arm the timer.

        Returns the generation number of this trigger.  A blank industry
        cancels the pending run (nothing to audit against) but still
        supersedes anything in flight.
        """
        self._generation += 1
        snapshot = AuditSnapshot(
            generation=self._generation,
            facts=tuple(facts or ()),
            industry=(industry or "").strip(),
        )

        if not snapshot.industry:
            self._timer.cancel()
            return snapshot.generation

        self._timer.schedule(lambda: self._start_run(snapshot))
        return snapshot.generation

    def _start_run(self, snapshot: AuditSnapshot) -> None:
        self.runs_started += 1
        task = asyncio.create_task(self._run(snapshot))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, snapshot: AuditSnapshot) -> None:
        try:
            result = await self._auditor.audit_gaps(list(snapshot.facts), snapshot.industry)
        except Exception as exc:
            if snapshot.generation != self._generation:
                logger.debug("DebouncedAudit: stale run %d failed — ignored", snapshot.generation)
                return
            logger.error("DebouncedAudit: audit failed — %s", exc)
            self.last_error = exc
            return

        if snapshot.generation != self._generation:
            logger.debug(
                "DebouncedAudit: dropping stale result of run %d (latest=%d)",
                snapshot.generation,
                self._generation,
            )
            return

        self.suggestions = result
        self.last_error = None
        if self._on_result is not None:
            self._on_result(result)

    async def drain(self) -> None:
        """Wait for every in-flight run to finish (pending timers are not awaited)."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def close(self) -> None:
        """Cancel the pending timer and every in-flight run."""
        self._timer.cancel()
        for task in list(self._inflight):
            task.cancel()


class AuditRegistry:
    """
    One ``DebouncedAudit`` per profile, kept for the life of the process.

    Profile edits call ``trigger``; ``GET /api/profiles/{id}/audit`` reads the
    latest accepted suggestions back through ``peek``.
    """

    def __init__(self, delay: Optional[float] = None) -> None:
        self.delay = delay
        self._audits: Dict[str, DebouncedAudit] = {}

    def for_profile(self, profile_id: str, client: GenerationClient) -> DebouncedAudit:
        audit = self._audits.get(profile_id)
        if audit is None:
            audit = DebouncedAudit(KnowledgeAuditor(client), delay=self.delay)
            self._audits[profile_id] = audit
        return audit

    def peek(self, profile_id: str) -> Optional[DebouncedAudit]:
        return self._audits.get(profile_id)

    def trigger(
        self,
        profile_id: str,
        facts: Sequence[str],
        industry: str,
        client: GenerationClient,
    ) -> int:
        generation = self.for_profile(profile_id, client).trigger(facts, industry)
        logger.debug("AuditRegistry: profile=%s generation=%d armed", profile_id, generation)
        return generation

    async def drain(self) -> None:
        for audit in list(self._audits.values()):
            await audit.drain()

    def close(self) -> None:
        for audit in self._audits.values():
            audit.close()
        self._audits.clear()


audit_registry = AuditRegistry()


def get_audit_registry() -> AuditRegistry:
    """FastAPI dependency returning the process-wide audit registry."""
    return audit_registry
