"""
Data models for the QnA Maker service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional

# Metadata names as stored by the QnA Maker service
METADATA_CREATED_AT = "createdat"
METADATA_CREATED_BY = "createdby"
METADATA_UPDATED_AT = "updatedat"
METADATA_UPDATED_BY = "updatedby"
METADATA_CONVERSATION_ID = "conversationid"
METADATA_ACTIVITY_REFERENCE_ID = "activityreferenceid"

# Source recorded on entries edited through the bot
EDITORIAL_SOURCE = "Editorial"

_DOTNET_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)


class Environment(str, Enum):
    """Knowledge base slot."""
    PROD = "Prod"
    TEST = "Test"


def utc_ticks(now: Optional[datetime] = None) -> str:
    """Current UTC time as .NET ticks (100ns intervals since 0001-01-01)."""
    now = now or datetime.now(timezone.utc)
    delta = now - _DOTNET_EPOCH
    ticks = (delta.days * 86400 + delta.seconds) * 10_000_000 + delta.microseconds * 10
    return str(ticks)


@dataclass
class MetadataEntry:
    """Name/value pair attached to a QnA entry."""
    name: str
    value: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetadataEntry":
        return cls(name=data.get("name", ""), value=data.get("value"))


@dataclass
class QnaEntry:
    """One question/answer pair in a knowledge base."""
    questions: List[str]
    answer: str
    metadata: List[MetadataEntry] = field(default_factory=list)
    id: Optional[int] = None
    source: Optional[str] = None

    def metadata_value(self, name: str) -> Optional[str]:
        for entry in self.metadata:
            if entry.name == name:
                return entry.value
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "questions": list(self.questions),
            "answer": self.answer,
            "metadata": [m.to_dict() for m in self.metadata],
        }
        if self.id is not None:
            data["id"] = self.id
        if self.source is not None:
            data["source"] = self.source
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QnaEntry":
        return cls(
            questions=list(data.get("questions") or []),
            answer=data.get("answer", ""),
            metadata=[MetadataEntry.from_dict(m) for m in data.get("metadata") or []],
            id=data.get("id"),
            source=data.get("source"),
        )


@dataclass
class QnaSearchResult:
    """Candidate answer returned by the runtime endpoint."""
    questions: List[str]
    answer: str
    score: float
    id: Optional[int] = None
    source: Optional[str] = None
    metadata: List[MetadataEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QnaSearchResult":
        return cls(
            questions=list(data.get("questions") or []),
            answer=data.get("answer", ""),
            score=float(data.get("score", 0.0)),
            id=data.get("id"),
            source=data.get("source"),
            metadata=[MetadataEntry.from_dict(m) for m in data.get("metadata") or []],
        )


@dataclass
class QnaSearchResultList:
    """Ranked answers for one question."""
    answers: List[QnaSearchResult] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.answers)

    def __iter__(self):
        return iter(self.answers)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QnaSearchResultList":
        return cls(answers=[QnaSearchResult.from_dict(a) for a in data.get("answers") or []])


@dataclass
class KnowledgebaseDetails:
    """Knowledge base details reported by the authoring endpoint."""
    id: str
    name: Optional[str] = None
    host_name: Optional[str] = None
    last_accessed_timestamp: Optional[str] = None
    last_changed_timestamp: Optional[str] = None
    last_published_timestamp: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgebaseDetails":
        return cls(
            id=data.get("id", ""),
            name=data.get("name"),
            host_name=data.get("hostName"),
            last_accessed_timestamp=data.get("lastAccessedTimestamp"),
            last_changed_timestamp=data.get("lastChangedTimestamp"),
            last_published_timestamp=data.get("lastPublishedTimestamp"),
            user_id=data.get("userId"),
        )


@dataclass
class Operation:
    """Long-running operation handle for knowledge base updates."""
    operation_id: str
    operation_state: str
    created_timestamp: Optional[str] = None
    last_action_timestamp: Optional[str] = None
    resource_location: Optional[str] = None
    user_id: Optional[str] = None
    error_response: Optional[Dict[str, Any]] = None

    @property
    def is_finished(self) -> bool:
        return self.operation_state in ("Succeeded", "Failed")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Operation":
        return cls(
            operation_id=data.get("operationId", ""),
            operation_state=data.get("operationState", ""),
            created_timestamp=data.get("createdTimestamp"),
            last_action_timestamp=data.get("lastActionTimestamp"),
            resource_location=data.get("resourceLocation"),
            user_id=data.get("userId"),
            error_response=data.get("errorResponse"),
        )
