"""Intent resolver mapping free text to a single action call.

Every catalog entry is scored against the request; candidates are then
discarded (unavailable agent, below threshold), ranked, and the winner is
returned as a ResolvedCall. The full score trace is kept on the result and on
the resolution errors so any discarded candidate can be explained.
"""

import asyncio
import logging
import re
from typing import Any

from insurance_mesh.actions.registry import coerce_argument
from insurance_mesh.actions.types import ActionDescriptor
from insurance_mesh.errors import IncompleteArgumentsError, NoMatchingActionError
from insurance_mesh.mesh.catalog import AgentCatalog, CatalogEntry
from insurance_mesh.resolver.keyword import KeywordScorer
from insurance_mesh.resolver.types import (
    AGENT_UNAVAILABLE,
    BELOW_THRESHOLD,
    CandidateScore,
    ResolvedCall,
    Scorer,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.25

_CAMEL_TOKEN_RE = re.compile(r"\b[a-z]+(?:[A-Z][a-z0-9]*)+\b")


def combine_confidence(similarity: float, filled: int, required: int) -> float:
    """Blend scorer similarity with the share of required parameters found."""
    ratio = 1.0 if required == 0 else filled / required
    return similarity * (0.6 + 0.4 * ratio)


class IntentResolver:
    """Selects the best-matching catalog action for a request.

    Attributes:
        catalog: The catalog whose actions are candidates
        scorer: Similarity and extraction capability
        min_confidence: Candidates below this confidence are discarded
    """

    def __init__(
        self,
        catalog: AgentCatalog,
        scorer: Scorer | None = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> None:
        self.catalog = catalog
        self.scorer = scorer or KeywordScorer()
        self.min_confidence = min_confidence

    async def resolve(self, text: str, context: str | None = None) -> ResolvedCall:
        """Resolve request text to one qualified action call.

        Args:
            text: The request text
            context: Extra text used only to fill required parameters the
                     request itself does not provide

        Returns:
            ResolvedCall: The winning action, its arguments and the trace

        Raises:
            AmbiguousActionError: If the text names a bare action exposed by
                                  several agents
            NoMatchingActionError: If no candidate clears the threshold
            IncompleteArgumentsError: If the winner lacks required parameters
        """
        text = text.strip()
        if not text:
            raise NoMatchingActionError(text)

        explicit = self._explicit_entries(text)
        entries = explicit or self.catalog.list_actions()
        trace = list(
            await asyncio.gather(
                *(self._score_entry(entry, text, context, bool(explicit)) for entry in entries)
            )
        )

        viable = []
        for candidate in trace:
            if candidate.discarded_reason is not None:
                continue
            if candidate.confidence < self.min_confidence:
                candidate.discarded_reason = BELOW_THRESHOLD
                continue
            viable.append(candidate)

        self._log_trace(text, trace)

        if not viable:
            raise NoMatchingActionError(text, trace)

        best = min(viable, key=lambda c: (-round(c.confidence, 9), len(c.missing), c.order))
        if best.missing:
            raise IncompleteArgumentsError(
                best.action, best.missing, best.arguments, best.confidence
            )

        logger.info(f"Resolved {text!r} to {best.action} (confidence {best.confidence:.2f})")
        return ResolvedCall(
            action=best.action,
            arguments=best.arguments,
            confidence=best.confidence,
            text=text,
            trace=trace,
        )

    def _explicit_entries(self, text: str) -> list[CatalogEntry]:
        """Return the entries the text names directly, if it names any."""
        entries = self.catalog.list_actions()
        found: dict[str, CatalogEntry] = {}
        for entry in entries:
            pattern = rf"(?<![\w.]){re.escape(entry.qualified_name)}\b"
            if re.search(pattern, text):
                found[entry.qualified_name] = entry
        if found:
            return list(found.values())

        bare_names = {entry.descriptor.name for entry in entries}
        for token in _CAMEL_TOKEN_RE.findall(text):
            if token in bare_names:
                entry = self.catalog.resolve_name(token)
                found[entry.qualified_name] = entry
        return list(found.values())

    async def _score_entry(
        self, entry: CatalogEntry, text: str, context: str | None, explicit: bool
    ) -> CandidateScore:
        descriptor = entry.descriptor
        if not self.catalog.is_available(entry.agent_id):
            return CandidateScore(
                action=entry.qualified_name,
                similarity=0.0,
                confidence=0.0,
                discarded_reason=AGENT_UNAVAILABLE,
                order=entry.order,
            )

        similarity = 1.0 if explicit else await self.scorer.score(text, descriptor)
        similarity = min(max(similarity, 0.0), 1.0)
        candidate = CandidateScore(
            action=entry.qualified_name,
            similarity=similarity,
            confidence=combine_confidence(similarity, 0, len(descriptor.required_parameters)),
            order=entry.order,
        )
        if similarity < self.min_confidence:
            # Even a full argument set could not lift it over the threshold
            candidate.missing = [p.name for p in descriptor.required_parameters]
            return candidate

        arguments = await self._extract(text, descriptor, candidate.rejected)
        missing = [p.name for p in descriptor.required_parameters if p.name not in arguments]
        if missing and context:
            extra = await self._extract(context, descriptor, candidate.rejected)
            for name in missing:
                if name in extra:
                    arguments[name] = extra[name]
            missing = [p.name for p in descriptor.required_parameters if p.name not in arguments]

        required = len(descriptor.required_parameters)
        candidate.arguments = arguments
        candidate.missing = missing
        candidate.confidence = combine_confidence(similarity, required - len(missing), required)
        return candidate

    async def _extract(
        self, text: str, descriptor: ActionDescriptor, rejected: dict[str, str]
    ) -> dict[str, Any]:
        raw = await self.scorer.extract(text, descriptor)
        arguments: dict[str, Any] = {}
        for spec in descriptor.parameters:
            if spec.name not in raw or raw[spec.name] is None:
                continue
            try:
                arguments[spec.name] = coerce_argument(spec, raw[spec.name])
            except ValueError as e:
                rejected[spec.name] = str(e)
        return arguments

    def _log_trace(self, text: str, trace: list[CandidateScore]) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(f"Score trace for {text!r}:")
        for candidate in sorted(trace, key=lambda c: -c.confidence):
            logger.debug(
                f"  {candidate.action}: similarity={candidate.similarity:.3f} "
                f"confidence={candidate.confidence:.3f} missing={candidate.missing} "
                f"discarded={candidate.discarded_reason}"
            )
