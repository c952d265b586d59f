"""
Schema definitions shared by the provider adapters, the agent pipeline and the API.

These data models are the contract between callers, the orchestration core and the vendor
adapters.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

import uuid
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------
class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One turn of a conversation in the canonical (vendor-neutral) shape."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)


class CanonicalResponse(BaseModel):
    """Normalized completion returned by every provider adapter."""

    text: str
    usage: Optional[Dict[str, Any]] = Field(None, description="Opaque vendor usage stats")


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------
class ProviderConfig(BaseModel):
    """Credential and model selection for one provider."""

    provider: str
    model_id: str
    credential: SecretStr


class ProviderModels(BaseModel):
    """Static catalog entry describing the models of one provider."""

    default_model: str
    cheap_model: Optional[str] = Field(None, description="Model used for the scan pass")
    model_prefix: Optional[str] = Field(
        None, description="Model ids must start with this prefix (mismatches are substituted)"
    )
    verbose: bool = Field(False, description="Provider tends to pad answers; fast path trims it")


# ---------------------------------------------------------------------------
# Agent pipeline
# ---------------------------------------------------------------------------
class Track(str, Enum):
    """Handling path for an intent."""

    FAST = "fast"
    HEAVY = "heavy"


class Intent(str, Enum):
    """Closed set of query intents produced by the router."""

    CHAT = "chat"
    EXPLAIN_COMPACT = "explain_compact"
    SUMMARY_3LINES = "summary_3lines"
    SUMMARY_OBSIDIAN = "summary_obsidian"
    DEEP_ANALYSIS = "deep_analysis"

    @property
    def track(self) -> Track:
        if self in (Intent.CHAT, Intent.EXPLAIN_COMPACT, Intent.SUMMARY_3LINES):
            return Track.FAST
        return Track.HEAVY


class ToolKind(str, Enum):
    """Sub-task kinds the planner may schedule (plus the final synthesis)."""

    SEARCH = "search"
    EXTRACT = "extract"
    AUTHOR_SIM = "author-sim"
    ANALYZE = "analyze"
    CRITIC = "critic"
    HYPOTHESIZE = "hypothesize"
    SYNTHESIZE = "synthesize"


class ThoughtStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentThought(BaseModel):
    """
    Progress record for one sub-task.

    Snapshots are immutable: an update is a new object carrying the same ``id`` so observers
    reconcile by id rather than by position.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tool_kind: ToolKind
    status: ThoughtStatus = ThoughtStatus.PENDING
    message: str
    result: Optional[str] = None


class PlanStep(BaseModel):
    """A sub-task the planner wants the orchestrator to execute."""

    tool: ToolKind = Field(ToolKind.ANALYZE, description="Registered tool kind")
    goal: str = Field(..., description="What this step should find out")


class OrchestrationState(str, Enum):
    PLANNING = "planning"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


class OrchestrationResult(BaseModel):
    """Outcome of one ``Orchestrator.run`` invocation."""

    answer: str
    intent: Intent
    state: OrchestrationState
    thoughts: List[AgentThought] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Document tasks
# ---------------------------------------------------------------------------
class PaperSummary(BaseModel):
    takeaway: str = ""
    objective: str = ""
    methodology: str = ""
    results: str = ""
    limitations: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _join_bullets(cls, value: Any) -> Any:
        # Models sometimes return each field as a list of bullet strings
        if isinstance(value, list):
            return "\n".join(str(v) for v in value)
        return value


class HighlightKind(str, Enum):
    NOVELTY = "novelty"
    METHOD = "method"
    RESULT = "result"


class Highlight(BaseModel):
    """A sentence worth highlighting, with the reason it matters."""

    text: str
    kind: HighlightKind = Field(..., alias="type")
    reason: str = ""

    model_config = ConfigDict(populate_by_name=True)


class AlignedSentence(BaseModel):
    """A source sentence paired with its translation."""

    source: str
    translation: str
