"""
Pydantic schemas for compliance turn requests, responses and stream chunks.
"""

from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ── Conversation ──

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    role: Role
    content: str


# ── Profile ──

PersonaType = Literal[
    "self-employed",
    "single-director",
    "paye-employee",
    "investor",
    "advisor",
]

AgeBand = Literal["18-25", "26-35", "36-45", "46-55", "56-65", "65+"]


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_type: PersonaType
    jurisdictions: list[str] = Field(default_factory=list)
    age_band: AgeBand | None = None
    has_company: bool | None = None
    prsi_class: str | None = None

    @field_validator("jurisdictions")
    @classmethod
    def _jurisdictions_not_blank(cls, value: list[str]) -> list[str]:
        if any(not code.strip() for code in value):
            raise ValueError("jurisdiction codes must be non-empty strings")
        return value


# ── Graph nodes ──

UncertaintyLevel = Literal["low", "medium", "high"]


class ResolvedNode(BaseModel):
    id: str
    label: str
    type: str


class CapturedConcept(BaseModel):
    """One concept reported by the model through the capture_concepts tool."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    label: str
    type: str | None = None
    jurisdiction: str | None = None
    domain: str | None = None
    kind: str | None = None
    pref_label: str | None = Field(None, validation_alias=AliasChoices("pref_label", "prefLabel"))
    alt_labels: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("alt_labels", "altLabels")
    )
    definition: str | None = None
    source_urls: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("source_urls", "sourceUrls")
    )
    canonical_id: str | None = Field(
        None, validation_alias=AliasChoices("canonical_id", "canonicalId")
    )
    node_id: str | None = Field(None, validation_alias=AliasChoices("node_id", "nodeId"))


# ── Turn request / response ──

class ComplianceRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    profile: UserProfile | None = None
    tenant_id: str | None = None
    conversation_id: str | None = None


class ComplianceResponse(BaseModel):
    answer: str
    referenced_nodes: list[ResolvedNode]
    agent_used: str
    jurisdictions: list[str]
    uncertainty_level: UncertaintyLevel | None = None
    follow_ups: list[str] = Field(default_factory=list)
    disclaimer: str


# ── Stream chunks ──

class StreamMetadata(BaseModel):
    agent_used: str
    jurisdictions: list[str]
    uncertainty_level: UncertaintyLevel | None = None
    referenced_nodes: list[ResolvedNode]


class MetadataChunk(BaseModel):
    type: Literal["metadata"] = "metadata"
    metadata: StreamMetadata


class TextChunk(BaseModel):
    type: Literal["text"] = "text"
    delta: str


class DoneChunk(BaseModel):
    type: Literal["done"] = "done"
    follow_ups: list[str] = Field(default_factory=list)
    referenced_nodes: list[ResolvedNode]
    disclaimer: str


class ErrorChunk(BaseModel):
    type: Literal["error"] = "error"
    error: str


ComplianceStreamChunk = Annotated[
    MetadataChunk | TextChunk | DoneChunk | ErrorChunk,
    Field(discriminator="type"),
]
