# temporal_facts/__init__.py

from .crypto import AesGcmCipher, Cipher, EncryptedBlob
from .errors import (
    DecryptionError,
    FactNotFoundError,
    InvalidKeyError,
    StoreClosedError,
    TemporalFactsError,
)
from .facts import ContextResult, TemporalFacts
from .models import (
    CandidateKind,
    ConflictAction,
    ConflictResolution,
    ExtractedFactCandidate,
    FactQuery,
    FactScope,
    FactSource,
    FactStoreStats,
    FactType,
    FactUpdate,
    Memory,
    NewFact,
    QueryType,
    RankedCandidate,
    TemporalFact,
    TimelineEntry,
)
from .scoring import format_for_llm, get_relevant_context
from .storage import FactStore

__all__ = [
    "AesGcmCipher",
    "CandidateKind",
    "Cipher",
    "ConflictAction",
    "ConflictResolution",
    "ContextResult",
    "DecryptionError",
    "EncryptedBlob",
    "ExtractedFactCandidate",
    "FactNotFoundError",
    "FactQuery",
    "FactScope",
    "FactSource",
    "FactStore",
    "FactStoreStats",
    "FactType",
    "FactUpdate",
    "InvalidKeyError",
    "Memory",
    "NewFact",
    "QueryType",
    "RankedCandidate",
    "StoreClosedError",
    "TemporalFact",
    "TemporalFacts",
    "TemporalFactsError",
    "TimelineEntry",
    "format_for_llm",
    "get_relevant_context",
]
