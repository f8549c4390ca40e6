"""RunOrchestrator: resumable, sequential evaluation of a batch of scenarios."""

import time
from dataclasses import dataclass
from typing import Any

from convo_eval.assertion.domain.engine import evaluate
from convo_eval.assertion.domain.snapshots import StateSnapshots
from convo_eval.config.domain.limits import RunLimits
from convo_eval.conversation.application.driver import ConversationDriver, PlanActivator
from convo_eval.conversation.domain.message import count_user_turns
from convo_eval.conversation.domain.session import ConversationSession
from convo_eval.conversation.domain.state_reader import StateReader
from convo_eval.core.errors import ConvoEvalError
from convo_eval.core.ids import new_id, scenario_request_id
from convo_eval.evaluation.domain.identity import EvalIdentity, IdentityProvider
from convo_eval.evaluation.domain.observer import OrchestratorObserver
from convo_eval.evaluation.domain.registry import RunRegistry
from convo_eval.evaluation.domain.run import EvalRun, RunConfig, RunMetrics, RunStatus
from convo_eval.evaluation.domain.summary import BatchResult, ScenarioResult
from convo_eval.fixture.application.seeder import FixtureSeeder
from convo_eval.fixture.application.template_builder import TemplateBuilder
from convo_eval.fixture.domain.errors import PlanBankEmptyError, TemplateBuildError
from convo_eval.fixture.domain.seeding import SeedOptions
from convo_eval.fixture.domain.store import FixtureStore
from convo_eval.fixture.domain.template import PlanTemplate
from convo_eval.judge.domain.judge import Judge
from convo_eval.judge.domain.verdict import JudgeRequest
from convo_eval.scenario.domain.scenario import Scenario

# Plan activation simulated mid-conversation on the messaging channel.
ACTIVATION_ACTIVE_COUNT = 2


@dataclass
class _Attempt:
    """Mutable bookkeeping for one scenario, readable from the failure path."""

    scenario: Scenario
    request_id: str
    run: EvalRun | None


class RunOrchestrator:
    """Runs scenarios one at a time and persists one run row per scenario.

    A row is looked up by its deterministic request id before anything else:
    completed rows are reported again without re-running, unfinished rows are
    resumed with their identity and history, and only unknown keys get a new
    identity and fresh fixtures. Identities are deleted after success only.
    """

    def __init__(
        self,
        limits: RunLimits,
        registry: RunRegistry,
        identities: IdentityProvider,
        templates: TemplateBuilder,
        seeder: FixtureSeeder,
        fixture_store: FixtureStore,
        driver: ConversationDriver,
        state_reader: StateReader,
        judge: Judge,
        observer: OrchestratorObserver,
    ) -> None:
        self._limits = limits
        self._registry = registry
        self._identities = identities
        self._templates = templates
        self._seeder = seeder
        self._fixture_store = fixture_store
        self._driver = driver
        self._state_reader = state_reader
        self._judge = judge
        self._observer = observer

    async def run(self, batch_request_id: str, scenarios: list[Scenario]) -> BatchResult:
        """Evaluate up to ``max_scenarios`` scenarios and return partial-safe results.

        Per-scenario ConvoEvalErrors are recorded on the run row and reported as
        failed results; they stop the batch only when the stop policy says so or
        when the plan template cannot be produced.
        """
        limits = self._limits
        selected = scenarios[: limits.max_scenarios]
        self._observer.batch_started(
            batch_request_id=batch_request_id, total_scenarios=len(selected)
        )
        started_at = time.monotonic()

        results: list[ScenarioResult] = []
        stopped_reason: str | None = None
        total_cost = 0.0

        for index, scenario in enumerate(selected, start=1):
            request_id = scenario_request_id(batch_request_id, scenario.dataset_key, scenario.id)
            self._observer.scenario_started(
                request_id=request_id, scenario_key=scenario.id, index=index, total=len(selected)
            )
            attempt = _Attempt(scenario=scenario, request_id=request_id, run=None)

            try:
                attempt.run = await self._registry.find_by_key(request_id)
                if attempt.run is not None and attempt.run.is_completed:
                    self._observer.scenario_already_completed(
                        request_id=request_id, eval_run_id=attempt.run.id
                    )
                    result = ScenarioResult.from_run(attempt.run)
                else:
                    result = await self._execute(attempt)
            except ConvoEvalError as exc:
                results.append(await self._record_failure(attempt, exc))
                if isinstance(exc, (TemplateBuildError, PlanBankEmptyError)):
                    stopped_reason = f"Template unavailable: {exc}"
                    break
                if limits.stop_on_first_failure:
                    stopped_reason = (
                        f"Stopped on first failure: scenario {scenario.id} failed: {exc}"
                    )
                    break
                continue

            results.append(result)
            total_cost += result.cost_usd

            if limits.stop_on_first_failure and result.issues_count > 0:
                stopped_reason = (
                    f"Stopped on first failure: scenario {scenario.id} "
                    f"had {result.issues_count} issues"
                )
                break
            if limits.budget_usd > 0 and total_cost >= limits.budget_usd:
                stopped_reason = f"Budget reached: {total_cost:.4f} USD"
                break

        if stopped_reason is not None:
            self._observer.batch_stopped(batch_request_id=batch_request_id, reason=stopped_reason)
        self._observer.batch_completed(
            batch_request_id=batch_request_id,
            ran=len(results),
            total_cost_usd=total_cost,
            elapsed_seconds=time.monotonic() - started_at,
        )

        return BatchResult(
            batch_request_id=batch_request_id,
            requested_scenarios=len(scenarios),
            selected_scenarios=len(selected),
            ran=len(results),
            stopped_reason=stopped_reason,
            plan_template_fingerprint=self._templates.fingerprint,
            total_cost_usd=total_cost,
            total_prompt_tokens=sum(r.prompt_tokens for r in results),
            total_output_tokens=sum(r.output_tokens for r in results),
            total_tokens=sum(r.total_tokens for r in results),
            results=results,
        )

    # ------------------------------------------------------------------
    # One scenario
    # ------------------------------------------------------------------

    async def _execute(self, attempt: _Attempt) -> ScenarioResult:
        scenario = attempt.scenario
        previous = attempt.run
        resuming = False
        if (
            previous is not None
            and previous.config.seeded
            and previous.config.test_user_id is not None
        ):
            resuming = True
            identity = EvalIdentity(
                user_id=str(previous.config.test_user_id),
                email=previous.config.test_user_email or "",
            )
            run = previous.with_config(resumed=True)
        else:
            if previous is not None and previous.config.test_user_id:
                # A half-seeded identity cannot be resumed; replace it.
                await self._cleanup(attempt.request_id, previous.config.test_user_id)
            identity = await self._identities.create()
            self._observer.scenario_identity_created(
                request_id=attempt.request_id, test_user_id=identity.user_id
            )
            run = EvalRun(
                id=previous.id if previous is not None else new_id(),
                dataset_key=scenario.dataset_key,
                scenario_key=scenario.id,
                config=RunConfig(
                    request_id=attempt.request_id,
                    test_user_id=identity.user_id,
                    test_user_email=identity.email,
                    resumed=previous is not None,
                    channel=scenario.channel,
                ),
            )
            # The row exists before seeding, so a crash mid-seed still leaves a resume anchor.
            await self._registry.upsert(run)
            attempt.run = run
            phone = await self._seed(scenario, identity)
            run = run.with_config(seeded=True, phone_number=phone or None)

        user_id = identity.user_id
        scope = scenario.scope
        chat_state_before = await self._state_reader.chat_state(user_id, scope)
        profile_before = await self._state_reader.profile(user_id)
        plan_before = await self._state_reader.plan_snapshot(user_id)
        history = await self._state_reader.messages(user_id, scope) if resuming else []
        if resuming:
            self._observer.scenario_resumed(
                request_id=attempt.request_id,
                eval_run_id=run.id,
                test_user_id=user_id,
                resumed_turns=count_user_turns(history),
            )

        run = run.model_copy(
            update={
                "status": RunStatus.RUNNING,
                "error": None,
                "state_before": _channel_state(scenario, profile_before, chat_state_before),
            }
        )
        await self._registry.upsert(run)
        attempt.run = run

        limits = self._limits
        session = ConversationSession(
            user_id=user_id,
            request_id=attempt.request_id,
            eval_run_id=run.id,
            scope=scope,
            history=history,
            chat_state_before=chat_state_before,
            max_turns=limits.max_turns_per_scenario,
            bilan_actions_count=limits.bilan_actions_count,
            deferral=limits.test_post_checkup_deferral,
            difficulty=limits.user_difficulty,
            model=limits.model,
            plan_context=plan_context_text(plan_before),
            phone_number=run.config.phone_number or "",
            use_real_ai=limits.use_real_ai,
        )
        activator = (
            self._plan_activator()
            if scenario.is_messaging and scenario.wa_simulate_plan_activation_on_done
            else None
        )
        outcome = await self._driver.drive(scenario, session, plan_activator=activator)

        chat_state_after = await self._state_reader.chat_state(user_id, scope)
        profile_after = await self._state_reader.profile(user_id)
        plan_after = await self._state_reader.plan_snapshot(user_id)
        logged = await self._state_reader.logged_issues(run.id)

        snapshots = StateSnapshots(
            profile=(
                outcome.mechanical_profile
                if outcome.mechanical_profile is not None
                else profile_after
            ),
            chat_state=chat_state_after,
            plan=plan_after,
            transcript=(
                outcome.mechanical_transcript
                if outcome.mechanical_transcript is not None
                else outcome.transcript
            ),
            logged_issues=logged,
        )
        mechanical_issues = evaluate(scenario.mechanical_assertions, snapshots)
        state_after = _channel_state(scenario, profile_after, chat_state_after)

        verdict = await self._judge.judge(
            JudgeRequest(
                dataset_key=scenario.dataset_key,
                scenario_key=scenario.id,
                eval_run_id=run.id,
                request_id=attempt.request_id,
                tags=scenario.tags,
                transcript=outcome.transcript,
                state_before=_as_dict(run.state_before),
                state_after=_as_dict(state_after),
                config={"description": scenario.description, "tags": scenario.tags},
                assertions=scenario.assertions,
                force_real_ai=limits.judge_force_real_ai,
            )
        )

        run = run.model_copy(
            update={
                "status": RunStatus.COMPLETED,
                "transcript": outcome.transcript,
                "state_after": state_after,
                "issues": [*verdict.issues, *mechanical_issues],
                "suggestions": verdict.suggestions,
                "metrics": RunMetrics(
                    cost_usd=verdict.metrics.cost_usd,
                    prompt_tokens=verdict.metrics.prompt_tokens,
                    output_tokens=verdict.metrics.output_tokens,
                    total_tokens=verdict.metrics.total_tokens,
                    turns_executed=outcome.turns_executed,
                    completed_reason=outcome.completed_reason,
                    mechanical_issues_count=len(mechanical_issues),
                    plan_template_fingerprint=self._templates.fingerprint,
                ),
                "error": None,
            }
        )
        await self._registry.upsert(run)
        attempt.run = run

        self._observer.scenario_completed(
            request_id=attempt.request_id,
            scenario_key=scenario.id,
            issues=len(run.issues),
            mechanical_issues=len(mechanical_issues),
            cost_usd=run.metrics.cost_usd,
        )

        if not (limits.keep_test_user or scenario.setup.keep_test_user):
            await self._cleanup(attempt.request_id, user_id)

        return ScenarioResult.from_run(run)

    async def _seed(self, scenario: Scenario, identity: EvalIdentity) -> str:
        options = SeedOptions.for_scenario(scenario, self._limits.bilan_actions_count)
        template = await self._template_for(options)
        await self._seeder.seed(template, identity.user_id, options)
        if not scenario.is_messaging:
            return ""
        return await self._seeder.prepare_messaging_profile(
            identity.user_id, identity.email, scenario.setup
        )

    async def _template_for(self, options: SeedOptions) -> PlanTemplate | None:
        """Build the batch template only for scenarios that seed plan items from it."""
        if not options.seed_plan:
            return None
        if (
            self._limits.use_pre_generated_plans
            or self._limits.bilan_actions_count > 0
            or options.active_count > 0
        ):
            return await self._templates.get_or_build()
        return None

    def _plan_activator(self) -> PlanActivator:
        async def activate(user_id: str) -> None:
            if await self._fixture_store.has_active_plan(user_id):
                return
            options = SeedOptions(active_count=ACTIVATION_ACTIVE_COUNT)
            await self._seeder.seed(await self._template_for(options), user_id, options)

        return activate

    async def _cleanup(self, request_id: str, user_id: str) -> None:
        try:
            await self._identities.delete(user_id)
        except ConvoEvalError as exc:
            # The run is already completed; a leaked identity does not change its result.
            self._observer.identity_cleanup_failed(
                request_id=request_id, test_user_id=user_id, reason=str(exc)
            )

    async def _record_failure(self, attempt: _Attempt, exc: ConvoEvalError) -> ScenarioResult:
        scenario = attempt.scenario
        reason = str(exc)
        self._observer.scenario_failed(
            request_id=attempt.request_id, scenario_key=scenario.id, reason=reason
        )
        if attempt.run is None:
            return ScenarioResult(
                dataset_key=scenario.dataset_key,
                scenario_key=scenario.id,
                status=RunStatus.FAILED,
                error=reason,
            )

        failed = attempt.run.failed(reason)
        try:
            await self._registry.upsert(failed)
        except ConvoEvalError as store_exc:
            self._observer.run_record_failed(request_id=attempt.request_id, reason=str(store_exc))
        return ScenarioResult.from_run(failed)


def _channel_state(
    scenario: Scenario, profile: dict[str, Any] | None, chat_state: dict[str, Any] | None
) -> Any:
    if scenario.is_messaging:
        return {"profile": profile, "chat_state": chat_state}
    return chat_state


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def plan_context_text(snapshot: dict[str, Any] | None) -> str:
    """Short plan summary handed to the user simulator as reference context."""
    if not snapshot:
        return ""
    plan = snapshot.get("plan") or {}
    lines: list[str] = []
    if isinstance(plan, dict) and plan.get("title"):
        lines.append(f"Plan: {plan['title']}")
    for item in snapshot.get("actions") or []:
        if not isinstance(item, dict):
            continue
        kind = item.get("_kind") or "action"
        lines.append(f"- [{kind}] {item.get('title') or '?'} ({item.get('status') or '?'})")
    return "\n".join(lines)
