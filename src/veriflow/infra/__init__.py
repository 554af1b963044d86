"""VeriFlow collaborators: stores, audit sinks, token issuance."""
from __future__ import annotations

from .repositories import (
    AuditSink,
    CaseStore,
    DraftStore,
    InMemoryAuditSink,
    InMemoryCaseStore,
    InMemoryDraftStore,
    InMemorySubmissionStore,
    LoggingAuditSink,
    SubmissionStore,
)
from .tokens import SecretTokenIssuer, TokenIssuer, next_reference


__all__ = [
    "AuditSink",
    "CaseStore",
    "DraftStore",
    "InMemoryAuditSink",
    "InMemoryCaseStore",
    "InMemoryDraftStore",
    "InMemorySubmissionStore",
    "LoggingAuditSink",
    "SubmissionStore",
    "SecretTokenIssuer",
    "TokenIssuer",
    "next_reference",
]
