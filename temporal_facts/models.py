from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FactType(str, Enum):
    PREFERENCE = "preference"      # "I like/prefer X" - stable, memory-like
    PLAN = "plan"                  # "I'm going to X" - time-bounded intent
    STATE = "state"                # "Currently doing X" - ephemeral
    OBSERVATION = "observation"    # "X happened" - episodic
    ERROR = "error"                # "Got error X" - very ephemeral
    DECISION = "decision"          # "Let's use X" - usually session-scoped
    IDENTITY = "identity"          # "I am X" - stable, memory-like


class FactSource(str, Enum):
    USER = "user"
    SYSTEM = "system"
    TOOL = "tool"


class FactScope(str, Enum):
    SESSION = "session"
    DEVICE = "device"
    ACCOUNT = "account"


class QueryType(str, Enum):
    STATEFUL = "stateful"
    PREFERENCE = "preference"
    IDENTITY = "identity"
    GENERAL = "general"


class CandidateKind(str, Enum):
    FACT = "fact"
    MEMORY = "memory"


class ConflictAction(str, Enum):
    DROP_LOSER = "drop_loser"
    MERGE_BOTH = "merge_both"
    FLAG_AMBIGUOUS = "flag_ambiguous"


class TemporalFact(BaseModel):
    """
    Subject-predicate-object triple with validity window and provenance.

    Timestamps are epoch milliseconds; ttl_seconds and decay_half_life are seconds.
    """

    id: str
    subject: str
    predicate: str
    object: str
    valid_from: int
    valid_to: Optional[int] = None          # None = still active
    last_confirmed_at: int
    last_updated: int
    type: FactType
    confidence: float = Field(ge=0.0, le=1.0)
    source: FactSource = FactSource.USER
    scope: FactScope = FactScope.ACCOUNT
    ttl_seconds: Optional[int] = None       # None = soft decay only
    decay_half_life: float = Field(gt=0)
    entities: List[str] = []
    retrieval_count: int = 0
    last_retrieved_at: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    source_id: Optional[str] = None


class NewFact(BaseModel):
    """A fact as handed to FactStore.insert / upsert (no id yet)."""

    subject: str
    predicate: str
    object: str
    valid_from: int
    valid_to: Optional[int] = None
    last_confirmed_at: int
    type: FactType
    confidence: float = Field(ge=0.0, le=1.0)
    source: FactSource = FactSource.USER
    scope: FactScope = FactScope.ACCOUNT
    ttl_seconds: Optional[int] = None
    decay_half_life: Optional[float] = Field(default=None, gt=0)  # filled from FACT_TYPE_HALF_LIVES
    entities: List[str] = []
    retrieval_count: int = 0
    last_retrieved_at: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    source_id: Optional[str] = None


class FactUpdate(BaseModel):
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    metadata: Optional[Dict[str, Any]] = None


class FactQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: Optional[str] = None
    predicate: Optional[str] = None
    object: Optional[str] = None
    at: Optional[int] = None                # defaults to now
    from_: Optional[int] = Field(default=None, alias="from")
    to: Optional[int] = None
    min_confidence: Optional[float] = None
    include_historical: bool = False
    limit: Optional[int] = None


class FactStoreStats(BaseModel):
    total_facts: int
    active_facts: int
    historical_facts: int
    predicate_counts: Dict[str, int] = {}
    oldest_fact: Optional[int] = None
    newest_fact: Optional[int] = None


class TimelineEntry(BaseModel):
    timestamp: int
    subject: str
    predicate: str
    object: str
    confidence: float
    change_type: str               # "created" | "invalidated"


class ExtractedFactCandidate(BaseModel):
    subject: str
    predicate: str
    object: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    type: FactType = FactType.OBSERVATION
    source: FactSource = FactSource.USER
    entities: List[str] = []


class Memory(BaseModel):
    """Semantic-memory record supplied by the caller; never written here."""

    id: str
    content: str
    sector: str
    confidence: float
    created_at: int
    last_seen_at: int
    salience: float = Field(ge=0.0, le=1.0)


class CandidateMetadata(BaseModel):
    fact_type: Optional[FactType] = None
    sector: Optional[str] = None
    confidence: float
    age_seconds: float


class RankedCandidate(BaseModel):
    kind: CandidateKind
    content: str
    normalized_score: float
    metadata: CandidateMetadata


class ConflictResolution(BaseModel):
    winner: RankedCandidate
    loser: RankedCandidate
    reason: str
    action: ConflictAction = ConflictAction.DROP_LOSER
