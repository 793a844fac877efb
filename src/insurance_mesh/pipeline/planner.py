"""Planner splitting a compound request into resolvable sub-intents.

Requests are split on conjunction markers (``;``, ``,``, ``and``, ``then``,
``also``), but only where the next word is an action verb known to the
catalog. That keeps "for John and Jane" in one piece while splitting
"check my policies and submit a claim". A leading ``For <subject>``
fragment without a verb becomes context shared by every step.
"""

import logging
import re

from insurance_mesh.errors import IncompleteArgumentsError, MeshError, NoMatchingActionError
from insurance_mesh.mesh.catalog import AgentCatalog
from insurance_mesh.pipeline.types import ExecutionMode, MergeStrategy, PipelinePlan, PlanStep
from insurance_mesh.resolver.intent import IntentResolver
from insurance_mesh.resolver.text import canonical, split_camel

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(
    r"\s*;\s*(?:(?:and\s+)?then\s+|also\s+)?"
    r"|\s*,\s*(?:(?:and\s+)?then\s+|and\s+|also\s+)?"
    r"|\s+(?:and\s+then|then|and|also)\s+",
    re.IGNORECASE,
)
_FIRST_WORD_RE = re.compile(r"[A-Za-z]+")
_WORD_RE = re.compile(r"[A-Za-z]+")
_TRAILING_PUNCTUATION = " \t\n.?!,;"


class PipelinePlanner:
    """Builds a PipelinePlan for one request.

    Attributes:
        catalog: Source of the action verbs used to find split points
        resolver: Resolves each fragment to a ResolvedCall
    """

    def __init__(self, catalog: AgentCatalog, resolver: IntentResolver) -> None:
        self.catalog = catalog
        self.resolver = resolver

    def verbs(self) -> set[str]:
        """Canonical leading words of every catalog action name."""
        verbs = set()
        for entry in self.catalog.list_actions():
            words = split_camel(entry.descriptor.name).split()
            if words:
                verbs.add(canonical(words[0]))
        return verbs

    def split(self, text: str) -> tuple[list[str], bool]:
        """Split text into fragments.

        Returns:
            tuple: The non-empty fragments, and whether an ordering marker
                   ("then") was used between them
        """
        verbs = self.verbs()
        fragments: list[str] = []
        ordered = False
        start = 0
        for match in _SEPARATOR_RE.finditer(text):
            word = _FIRST_WORD_RE.match(text, match.end())
            if word is None or canonical(word.group()) not in verbs:
                continue
            fragments.append(text[start : match.start()])
            if "then" in match.group().lower():
                ordered = True
            start = match.end()
        fragments.append(text[start:])

        cleaned = [f.strip(_TRAILING_PUNCTUATION) for f in fragments]
        return [f for f in cleaned if f], ordered

    def _is_context_fragment(self, fragment: str, verbs: set[str]) -> bool:
        words = _WORD_RE.findall(fragment)
        if not words or words[0].lower() != "for":
            return False
        return not any(canonical(w) in verbs for w in words[1:])

    async def plan(
        self,
        text: str,
        mode: ExecutionMode | None = None,
        merge: MergeStrategy = MergeStrategy.CONCATENATE,
    ) -> PipelinePlan:
        """Split and resolve a request into an execution plan.

        Fragments missing required arguments are deferred and depend on every
        earlier step; they are re-resolved at execution time with the earlier
        results as context. Fragments failing with any other resolution error
        become failed steps.

        An explicit "then" or a forced sequential mode also makes each step
        depend on the nearest earlier step that resolved. Steps that failed
        to resolve are never depended on.

        Args:
            text: The compound request
            mode: Force an execution mode; chosen automatically when None
            merge: How completed results are merged

        Returns:
            PipelinePlan: The plan

        Raises:
            MeshError: The first fragment's resolution error when no fragment
                       resolves at all
        """
        fragments, ordered = self.split(text)
        verbs = self.verbs()
        context = ""
        if len(fragments) > 1 and self._is_context_fragment(fragments[0], verbs):
            context = fragments.pop(0)
        if not fragments:
            raise NoMatchingActionError(text)

        steps: list[PlanStep] = []
        for index, fragment in enumerate(fragments):
            step = PlanStep(index=index, text=fragment)
            earlier = tuple(s.index for s in steps if s.resolution_error is None)
            try:
                step.call = await self.resolver.resolve(fragment, context=context or None)
            except IncompleteArgumentsError as e:
                if earlier:
                    step.depends_on = earlier
                    logger.debug(f"Deferring step {index} ({fragment!r}): missing {e.missing}")
                else:
                    step.resolution_error = e
            except MeshError as e:
                step.resolution_error = e
            steps.append(step)

        if all(step.resolution_error is not None for step in steps):
            raise steps[0].resolution_error

        chained = ordered or mode == ExecutionMode.SEQUENTIAL
        if mode is None:
            dependent = ordered or any(step.depends_on for step in steps)
            mode = ExecutionMode.SEQUENTIAL if dependent else ExecutionMode.INDEPENDENT
        if chained:
            _chain(steps)

        plan = PipelinePlan(text=text, steps=steps, mode=mode, merge=merge, context=context)
        logger.info(
            f"Planned {len(steps)} step(s) in {mode.value} mode: "
            f"{[s.call.action if s.call else None for s in steps]}"
        )
        return plan


def _chain(steps: list[PlanStep]) -> None:
    previous = None
    for step in steps:
        if previous is not None:
            step.depends_on = tuple(sorted(set(step.depends_on) | {previous}))
        if step.resolution_error is None:
            previous = step.index
