"""
Main orchestration entry point for Scholia.

``classify_and_respond`` routes a query to one of two paths:

* **fast** (chat, compact explanation, 3-line summary): one style-constrained call;
* **heavy** (structured summary, deep analysis): ``PLANNING -> EXECUTING(1..N) -> SYNTHESIZING
  -> DONE``, with ``FAILED`` reachable from every step.

All provider calls of one invocation are awaited strictly in order.  Progress is reported as
immutable :class:`AgentThought` snapshots; an update re-uses the id of the thought it replaces.
"""

import inspect
import logging
import re
from typing import (
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Union,
)

from scholia.agent import prompts
from scholia.agent.planner import Planner
from scholia.agent.responder import FastPathResponder
from scholia.agent.router import IntentRouter
from scholia.agent.scanner import (
    ContextScanner,
    ScanKind,
    ScanResult,
)
from scholia.agent.tool_executor import (
    ToolExecutionError,
    execute_step,
)
from scholia.config import Settings
from scholia.core.client import MultiProviderClient
from scholia.core.errors import ProviderError
from scholia.core.schema import (
    AgentThought,
    ChatMessage,
    Intent,
    OrchestrationResult,
    OrchestrationState,
    PlanStep,
    ThoughtStatus,
    ToolKind,
    Track,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[AgentThought], Union[None, Awaitable[None]]]

FAST_FALLBACK_MESSAGE = (
    "I couldn't generate a response right now. Please check your API settings or try again."
)
HEAVY_FALLBACK_MESSAGE = (
    "I encountered an error while processing your request. Please check your API settings or "
    "try again."
)

_MARKDOWN_RE = re.compile(r"markdown|\bmd\b|code\s*block|obsidian", re.IGNORECASE)
_SUMMARY_RE = re.compile(r"summar(?:y|ize|ise)|tl;?dr|\bgist\b", re.IGNORECASE)


def synthesis_shaping(query: str) -> str:
    """Extra synthesis instructions derived from what the query explicitly asks for."""
    if _MARKDOWN_RE.search(query):
        return prompts.SYNTH_MARKDOWN
    if _SUMMARY_RE.search(query):
        return prompts.SYNTH_SUMMARY
    return ""


# ---------------------------------------------------------------------------
# Progress tracking
# ---------------------------------------------------------------------------
class ThoughtLog:
    """Thoughts of one invocation, in creation order, forwarded to the caller's observer."""

    def __init__(self, on_progress: Optional[ProgressCallback] = None) -> None:
        self._on_progress = on_progress
        self._thoughts: Dict[str, AgentThought] = {}

    @property
    def thoughts(self) -> List[AgentThought]:
        return list(self._thoughts.values())

    @property
    def has_failure(self) -> bool:
        return any(t.status is ThoughtStatus.FAILED for t in self._thoughts.values())

    async def start(self, kind: ToolKind, message: str) -> AgentThought:
        thought = AgentThought(tool_kind=kind, status=ThoughtStatus.RUNNING, message=message)
        await self._emit(thought)
        return thought

    async def finish(
        self,
        thought: AgentThought,
        result: str,
        status: ThoughtStatus = ThoughtStatus.COMPLETED,
    ) -> AgentThought:
        updated = thought.model_copy(update={"status": status, "result": result})
        await self._emit(updated)
        return updated

    async def fail(self, kind: ToolKind, message: str, result: str) -> AgentThought:
        thought = AgentThought(
            tool_kind=kind, status=ThoughtStatus.FAILED, message=message, result=result
        )
        await self._emit(thought)
        return thought

    async def _emit(self, thought: AgentThought) -> None:
        self._thoughts[thought.id] = thought
        if self._on_progress is None:
            return
        try:
            outcome = self._on_progress(thought)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:  # pylint: disable=broad-except
            # A broken observer must not abort the pipeline.
            logger.exception("Progress callback failed for thought %s", thought.id)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class Orchestrator:
    """Single entry point combining routing, fast path, scan pass and heavy path."""

    def __init__(
        self,
        client: MultiProviderClient,
        provider: str,
        model_id: str | None = None,
        *,
        language: str | None = None,
        fast_context_chars: int = 15000,
        step_context_chars: int = 8000,
        history_chars: int = 3000,
        scan_threshold_chars: int = 12000,
        all_relevant_chars: int = 30000,
        max_plan_steps: int = 3,
    ) -> None:
        self.client = client
        self.provider = provider
        self.model_id = model_id
        self.language = language
        self.step_context_chars = step_context_chars
        self.router = IntentRouter(client)
        self.responder = FastPathResponder(client, fast_context_chars, language)
        self.planner = Planner(client, max_plan_steps, history_chars, language)
        self.scanner = ContextScanner(client, scan_threshold_chars, all_relevant_chars)

    @classmethod
    def from_settings(
        cls, cfg: Settings, client: MultiProviderClient | None = None
    ) -> "Orchestrator":
        return cls(
            client or MultiProviderClient.from_settings(cfg),
            cfg.PROVIDER,
            cfg.MODEL_ID,
            language=cfg.RESPONSE_LANGUAGE,
            fast_context_chars=cfg.FAST_CONTEXT_CHARS,
            step_context_chars=cfg.STEP_CONTEXT_CHARS,
            history_chars=cfg.HISTORY_CONTEXT_CHARS,
            scan_threshold_chars=cfg.SCAN_THRESHOLD_CHARS,
            all_relevant_chars=cfg.ALL_RELEVANT_CHARS,
            max_plan_steps=cfg.MAX_PLAN_STEPS,
        )

    def resolve_target(self, provider: str | None, model_id: str | None) -> tuple[str, str]:
        """Pick the provider/model for one invocation (explicit args win over defaults)."""
        provider = (provider or self.provider).lower()
        if model_id:
            return provider, model_id
        if provider == self.provider and self.model_id:
            return provider, self.model_id
        models = self.client.models_for(provider)
        if models is None:
            raise ValueError(f"No model given and no catalog entry for provider '{provider}'.")
        return provider, models.default_model

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def classify_and_respond(
        self,
        query: str,
        document_text: str,
        history: Sequence[ChatMessage] | None = None,
        on_progress: Optional[ProgressCallback] = None,
        *,
        provider: str | None = None,
        model_id: str | None = None,
        selection: str | None = None,
    ) -> str:
        """Answer *query* about *document_text* and return the answer text."""
        result = await self.run(
            query,
            document_text,
            history,
            on_progress,
            provider=provider,
            model_id=model_id,
            selection=selection,
        )
        return result.answer

    async def run(
        self,
        query: str,
        document_text: str,
        history: Sequence[ChatMessage] | None = None,
        on_progress: Optional[ProgressCallback] = None,
        *,
        provider: str | None = None,
        model_id: str | None = None,
        selection: str | None = None,
    ) -> OrchestrationResult:
        """
        Same as :meth:`classify_and_respond` but also returns intent, terminal state and thoughts.

        Raises
        ------
        MissingCredentialError
            No credential for the selected provider; raised before any network call.
        UnknownProviderError
            The selected provider has no registered adapter.
        """
        # Precondition: fail on configuration problems before touching the network.
        self.client.adapter(provider or self.provider)
        provider, model_id = self.resolve_target(provider, model_id)

        turns = list(history or [])
        log = ThoughtLog(on_progress)
        intent = await self.router.classify(query, provider, model_id)

        args = (intent, query, document_text, turns, provider, model_id, selection, log)
        if intent.track is Track.FAST:
            return await self._run_fast(*args)
        return await self._run_heavy(*args)

    # ------------------------------------------------------------------ #
    # Fast path
    # ------------------------------------------------------------------ #
    async def _run_fast(
        self,
        intent: Intent,
        query: str,
        document_text: str,
        history: List[ChatMessage],
        provider: str,
        model_id: str,
        selection: str | None,
        log: ThoughtLog,
    ) -> OrchestrationResult:
        try:
            answer = await self.responder.respond(
                intent, query, selection or document_text, history, provider, model_id
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Fast-path response failed (%s)", intent.value)
            return OrchestrationResult(
                answer=FAST_FALLBACK_MESSAGE,
                intent=intent,
                state=OrchestrationState.FAILED,
                thoughts=log.thoughts,
            )
        return OrchestrationResult(
            answer=answer, intent=intent, state=OrchestrationState.DONE, thoughts=log.thoughts
        )

    # ------------------------------------------------------------------ #
    # Heavy path
    # ------------------------------------------------------------------ #
    async def _scan_context(
        self, query: str, document_text: str, provider: str, model_id: str, anchored: bool
    ) -> ScanResult | None:
        if not self.scanner.should_scan(document_text, provider, model_id, anchored):
            return None
        try:
            return await self.scanner.scan(query, document_text, provider, model_id)
        except ProviderError as exc:
            logger.warning("Scan pass failed, continuing with a bounded prefix: %s", exc)
            return None

    async def _run_heavy(
        self,
        intent: Intent,
        query: str,
        document_text: str,
        history: List[ChatMessage],
        provider: str,
        model_id: str,
        selection: str | None,
        log: ThoughtLog,
    ) -> OrchestrationResult:
        state = OrchestrationState.PLANNING
        try:
            plan = await self.planner.plan(query, provider, model_id, history)
            scan = await self._scan_context(
                query, document_text, provider, model_id, anchored=selection is not None
            )

            base = selection or document_text
            step_document = scan.excerpt if scan and scan.kind is ScanKind.SPECIFIC else base
            step_document = step_document[: self.step_context_chars]

            state = OrchestrationState.EXECUTING
            results = await self._execute(plan, step_document, provider, model_id, log)

            state = OrchestrationState.SYNTHESIZING
            answer = await self._synthesize(query, results, scan, provider, model_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Orchestration failed during %s", state.value)
            if not log.has_failure:
                synthesizing = state is OrchestrationState.SYNTHESIZING
                kind = ToolKind.SYNTHESIZE if synthesizing else ToolKind.ANALYZE
                await log.fail(kind, f"Failed while {state.value}", str(exc))
            return OrchestrationResult(
                answer=HEAVY_FALLBACK_MESSAGE,
                intent=intent,
                state=OrchestrationState.FAILED,
                thoughts=log.thoughts,
            )

        return OrchestrationResult(
            answer=answer, intent=intent, state=OrchestrationState.DONE, thoughts=log.thoughts
        )

    async def _execute(
        self,
        plan: Sequence[PlanStep],
        document: str,
        provider: str,
        model_id: str,
        log: ThoughtLog,
    ) -> List[str]:
        """Run every step in order; the first failure stops the loop."""
        results: List[str] = []
        for step in plan:
            thought = await log.start(step.tool, step.goal)
            try:
                results.append(
                    await execute_step(
                        self.client, provider, model_id, step, document, self.language
                    )
                )
            except ToolExecutionError as exc:
                await log.finish(thought, str(exc.cause), ThoughtStatus.FAILED)
                raise
            await log.finish(thought, "Step completed.")
        return results

    async def _synthesize(
        self,
        query: str,
        results: Sequence[str],
        scan: ScanResult | None,
        provider: str,
        model_id: str,
    ) -> str:
        system = (
            prompts.SYNTH_SYSTEM
            + prompts.language_directive(self.language)
            + synthesis_shaping(query)
        )
        findings = "\n\n".join(results)
        if scan is None:
            user = prompts.SYNTH_USER.format(query=query, findings=findings)
        else:
            if scan.kind is ScanKind.NOT_FOUND:
                system += prompts.SYNTH_NOT_FOUND.format(sentinel=scan.excerpt)
            user = prompts.SYNTH_USER_WITH_CONTEXT.format(
                query=query, document=scan.excerpt, findings=findings
            )

        response = await self.client.send(
            provider, model_id, [ChatMessage.system(system), ChatMessage.user(user)]
        )
        logger.info("Synthesis complete (%d chars)", len(response.text))
        return response.text
