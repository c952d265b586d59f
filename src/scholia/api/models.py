"""
Pydantic models for Scholia API requests and responses.
This module defines the request and response schemas used by the Scholia API.
"""

from typing import (
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from scholia.core.schema import (
    AgentThought,
    ChatMessage,
    Intent,
    OrchestrationState,
    ProviderModels,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class ModelSelection(BaseModel):
    """Optional per-request override of the configured provider/model."""

    provider: Optional[str] = Field(None, description="Provider id, e.g. 'gemini'")
    model_id: Optional[str] = Field(None, description="Model id for the provider")


class AskRequest(ModelSelection):
    """A question about a document."""

    query: str = Field(..., description="User question")
    document: str = Field(..., description="Full document text")
    history: List[ChatMessage] = Field(default_factory=list, description="Prior turns")
    selection: Optional[str] = Field(None, description="Passage the question is anchored to")


class AskResponse(BaseModel):
    """Answer returned to the caller, with the progress trail."""

    answer: str
    intent: Intent
    state: OrchestrationState
    thoughts: List[AgentThought] = Field(default_factory=list)


class DocumentRequest(ModelSelection):
    """A task over a whole document."""

    document: str


class SelectionRequest(ModelSelection):
    """A task over a selected passage."""

    selection: str
    context: Optional[str] = None


class TextResponse(BaseModel):
    text: str


class ProviderInfo(BaseModel):
    name: str
    configured: bool
    models: Optional[ProviderModels] = None


class ProvidersResponse(BaseModel):
    default_provider: str
    providers: List[ProviderInfo]


class MetadataResponse(BaseModel):
    metadata: Dict[str, str] = Field(default_factory=dict)


class QuestionsResponse(BaseModel):
    questions: List[str] = Field(default_factory=list)
