"""
VeriFlow Stores

Persistence contracts the service depends on, with thread-safe in-memory
implementations used by the API and tests.

Key contracts:
- CaseStore: read by id / token, enumerate, compare-and-swap on version
- SubmissionStore: append-only, latest per case, next submission number
- DraftStore: explicit DraftSession checkpoints
- AuditSink: fire-and-forget lifecycle events
"""
from __future__ import annotations

import copy
import logging
from dataclasses import replace
from threading import RLock
from typing import Optional, Protocol

from ..exceptions import CaseNotFoundError, ConcurrentUpdateError
from ..models import AuditEvent, DraftSession, Submission, VerificationCase


# =============================================================================
# Contracts
# =============================================================================

class CaseStore(Protocol):
    def insert(self, case: VerificationCase) -> VerificationCase: ...

    def get(self, case_id: str) -> VerificationCase: ...

    def get_by_token(self, token: str) -> VerificationCase: ...

    def list_cases(self) -> list[VerificationCase]: ...

    def compare_and_swap(
        self, case_id: str, expected_version: int, case: VerificationCase
    ) -> VerificationCase: ...


class SubmissionStore(Protocol):
    def insert(self, submission: Submission) -> Submission: ...

    def latest(self, case_id: str) -> Optional[Submission]: ...

    def next_number(self, case_id: str) -> int: ...


class DraftStore(Protocol):
    def save(self, draft: DraftSession) -> DraftSession: ...

    def load(self, case_id: str) -> Optional[DraftSession]: ...

    def discard(self, case_id: str) -> None: ...


class AuditSink(Protocol):
    def emit(self, event: AuditEvent) -> None: ...


# =============================================================================
# In-Memory Implementations
# =============================================================================

class InMemoryCaseStore:
    """
    Case store guarded by a re-entrant lock.

    Every write bumps `version`. compare_and_swap succeeds only if the stored
    version still equals the version the caller read. Callers receive
    copies, so nothing outside the store can change a stored case.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._cases: dict[str, VerificationCase] = {}

    def insert(self, case: VerificationCase) -> VerificationCase:
        with self._lock:
            if case.id in self._cases:
                raise ConcurrentUpdateError(
                    message="Case already exists",
                    case_id=case.id,
                )
            stored = replace(case, version=1)
            self._cases[case.id] = stored
            return copy.deepcopy(stored)

    def get(self, case_id: str) -> VerificationCase:
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                raise CaseNotFoundError(message="Case not found", case_id=case_id)
            return copy.deepcopy(case)

    def get_by_token(self, token: str) -> VerificationCase:
        with self._lock:
            for case in self._cases.values():
                if token and case.access_token == token:
                    return copy.deepcopy(case)
        raise CaseNotFoundError(message="No case for access token")

    def list_cases(self) -> list[VerificationCase]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._cases.values()]

    def compare_and_swap(
        self,
        case_id: str,
        expected_version: int,
        case: VerificationCase,
    ) -> VerificationCase:
        with self._lock:
            current = self._cases.get(case_id)
            if current is None:
                raise CaseNotFoundError(message="Case not found", case_id=case_id)
            if current.version != expected_version:
                raise ConcurrentUpdateError(
                    message="Case was modified by another request",
                    case_id=case_id,
                    expected_version=expected_version,
                    actual_version=current.version,
                )
            stored = replace(case, version=expected_version + 1)
            self._cases[case_id] = stored
            return copy.deepcopy(stored)


class InMemorySubmissionStore:
    """Append-only submission log keyed by case."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._by_case: dict[str, list[Submission]] = {}

    def insert(self, submission: Submission) -> Submission:
        with self._lock:
            history = self._by_case.setdefault(submission.case_id, [])
            if history and history[-1].submission_number >= submission.submission_number:
                raise ConcurrentUpdateError(
                    message="Submission number already used",
                    case_id=submission.case_id,
                    details={"submission_number": submission.submission_number},
                )
            history.append(copy.deepcopy(submission))
            return submission

    def latest(self, case_id: str) -> Optional[Submission]:
        with self._lock:
            history = self._by_case.get(case_id)
            return copy.deepcopy(history[-1]) if history else None

    def history(self, case_id: str) -> list[Submission]:
        with self._lock:
            return [copy.deepcopy(s) for s in self._by_case.get(case_id, [])]

    def next_number(self, case_id: str) -> int:
        with self._lock:
            history = self._by_case.get(case_id)
            return history[-1].submission_number + 1 if history else 1


class InMemoryDraftStore:
    def __init__(self) -> None:
        self._lock = RLock()
        self._drafts: dict[str, DraftSession] = {}

    def save(self, draft: DraftSession) -> DraftSession:
        with self._lock:
            self._drafts[draft.case_id] = copy.deepcopy(draft)
            return draft

    def load(self, case_id: str) -> Optional[DraftSession]:
        with self._lock:
            draft = self._drafts.get(case_id)
            return copy.deepcopy(draft) if draft else None

    def discard(self, case_id: str) -> None:
        with self._lock:
            self._drafts.pop(case_id, None)


class InMemoryAuditSink:
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self._lock = RLock()
        self.events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        with self._lock:
            self.events.append(event)

    def for_case(self, case_id: str) -> list[AuditEvent]:
        with self._lock:
            return [e for e in self.events if e.case_id == case_id]


class LoggingAuditSink:
    """Writes events to the structured log."""

    def __init__(self, name: str = "veriflow.audit") -> None:
        self._logger = logging.getLogger(name)

    def emit(self, event: AuditEvent) -> None:
        self._logger.info(
            event.action.value,
            extra={"case_id": event.case_id, "status": event.details.get("status")},
        )
