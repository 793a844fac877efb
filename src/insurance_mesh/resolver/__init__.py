"""Intent resolution: mapping free text to a single qualified action call.

The resolver is independent of how similarity is computed. The default
KeywordScorer is deterministic; OllamaScorer delegates to a local model.
"""

from insurance_mesh.resolver.intent import (
    DEFAULT_MIN_CONFIDENCE,
    IntentResolver,
    combine_confidence,
)
from insurance_mesh.resolver.keyword import KeywordScorer
from insurance_mesh.resolver.llm import OllamaScorer
from insurance_mesh.resolver.types import (
    AGENT_UNAVAILABLE,
    BELOW_THRESHOLD,
    CandidateScore,
    ResolvedCall,
    Scorer,
)

__all__ = [
    "AGENT_UNAVAILABLE",
    "BELOW_THRESHOLD",
    "CandidateScore",
    "DEFAULT_MIN_CONFIDENCE",
    "IntentResolver",
    "KeywordScorer",
    "OllamaScorer",
    "ResolvedCall",
    "Scorer",
    "combine_confidence",
]
