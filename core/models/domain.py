# Path: core/models/domain.py
# Purpose: Define domain models shared across inference, capture, memory, and retrieval workflows.
# Layer: core/models.
# Details: Lightweight dataclasses simplify serialization between API, view models, and core services.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import numpy as np
from PIL import Image


class EngineState(str, Enum):
    """Lifecycle of the vision-language model owned by the inference engine."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class InferenceRequest:
    """One captioning request built per capture cycle and consumed exactly once."""

    frame: Optional[Image.Image]
    system_prompt: str
    instruction: str


class StreamEventKind(str, Enum):
    PARTIAL = "partial"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """Item of an inference stream.

    ``partial`` events carry the newly appended text only; the single terminal
    event carries the final text (``completed``) or the error message (``error``).
    """

    kind: StreamEventKind
    text: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind is not StreamEventKind.PARTIAL


@dataclass(frozen=True)
class CaptionRecord:
    """Final decoded caption of one completed generation."""

    timestamp: str
    text: str

    @classmethod
    def now(cls, text: str) -> "CaptionRecord":
        return cls(timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"), text=text)

    def memory_text(self) -> str:
        """Text that gets embedded and stored for this caption."""

        return f"{self.timestamp} : {self.text}"


@dataclass(frozen=True)
class EmbeddingRecord:
    """Stored memory: text plus its embedding vector. Never mutated after insert."""

    id: int
    text: str
    vector: np.ndarray = field(repr=False, compare=False)


@dataclass(frozen=True)
class QueryMatch:
    """A stored record paired with its similarity to the query vector."""

    record: EmbeddingRecord
    score: float
    rank: int


@dataclass
class QueryResult:
    """Records ranked by similarity to a query vector, most similar first."""

    matches: List[QueryMatch] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.matches

    def texts(self) -> List[str]:
        return [match.record.text for match in self.matches]

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self):
        return iter(self.matches)


@dataclass
class RetrievalResult:
    """Outcome of one spoken or typed memory query."""

    query: str
    result: QueryResult
    context: str = ""
    summary: Optional[str] = None
    summary_error: Optional[str] = None

    @property
    def no_matches(self) -> bool:
        """True when the store had nothing to return, which is not a failure."""

        return self.result.is_empty

    @property
    def matches(self) -> List[QueryMatch]:
        return self.result.matches
