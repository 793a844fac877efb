"""Data types produced by the intent resolver."""

from dataclasses import dataclass, field
from typing import Any, Protocol

from insurance_mesh.actions.types import ActionDescriptor

BELOW_THRESHOLD = "below_threshold"
AGENT_UNAVAILABLE = "agent_unavailable"


class Scorer(Protocol):
    """Pluggable similarity and argument-extraction capability.

    ``score`` returns a confidence in [0, 1] that the descriptor is what the
    text asks for; ``extract`` returns whatever raw argument values it can
    find, keyed by parameter name. Values are coerced by the resolver.
    """

    async def score(self, text: str, descriptor: ActionDescriptor) -> float: ...

    async def extract(self, text: str, descriptor: ActionDescriptor) -> dict[str, Any]: ...


@dataclass
class CandidateScore:
    """One line of the resolver's score trace.

    Attributes:
        action: Qualified action name
        similarity: Raw scorer similarity
        confidence: Combined confidence after parameter evidence
        arguments: Coerced arguments found for this candidate
        missing: Required parameters still unfilled
        rejected: Parameters whose extracted value failed coercion
        discarded_reason: Why the candidate was dropped, if it was
        order: Catalog order, used for deterministic tie-breaking
    """

    action: str
    similarity: float
    confidence: float
    arguments: dict[str, Any] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    rejected: dict[str, str] = field(default_factory=dict)
    discarded_reason: str | None = None
    order: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "similarity": round(self.similarity, 4),
            "confidence": round(self.confidence, 4),
            "arguments": self.arguments,
            "missing": self.missing,
            "rejected": self.rejected,
            "discarded_reason": self.discarded_reason,
        }


@dataclass
class ResolvedCall:
    """A single action call chosen for a piece of request text.

    Transient: produced by the resolver and consumed immediately by the
    pipeline or the single-action query path.
    """

    action: str
    arguments: dict[str, Any]
    confidence: float
    text: str = ""
    trace: list[CandidateScore] = field(default_factory=list)

    @property
    def agent_id(self) -> str:
        return self.action.rpartition(".")[0]

    @property
    def action_name(self) -> str:
        return self.action.rpartition(".")[2]
