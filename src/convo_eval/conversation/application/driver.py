"""ConversationDriver: runs one scenario's turns against the agent under test."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

from convo_eval.conversation.domain.agent import AgentCallMeta, AgentReply, AgentUnderTest
from convo_eval.conversation.domain.checkup import (
    is_checkup_complete,
    is_checkup_running,
    is_post_checkup_done,
)
from convo_eval.conversation.domain.errors import (
    AgentReplyMissingError,
    WebhookDeliveryError,
)
from convo_eval.conversation.domain.message import (
    ChatMessage,
    assistant,
    build_transcript,
    count_user_turns,
    user,
)
from convo_eval.conversation.domain.observer import ConversationObserver
from convo_eval.conversation.domain.outcome import ConversationOutcome, DriverPhase
from convo_eval.conversation.domain.session import ConversationSession
from convo_eval.conversation.domain.simulator import SimulationRequest, UserSimulator
from convo_eval.conversation.domain.state_reader import StateReader
from convo_eval.conversation.domain.transport import (
    InboundMessage,
    WebhookTransport,
    build_webhook_payload,
    digits_only,
    webhook_message_id,
)
from convo_eval.core.backoff import Sleeper
from convo_eval.core.errors import ConvoEvalError
from convo_eval.core.text import (
    looks_affirmative,
    looks_like_checkup_intent,
    normalize,
    signals_done,
)
from convo_eval.scenario.domain.scenario import Scenario

type PlanActivator = Callable[[str], Awaitable[None]]

KICKOFF_MESSAGE = "Oui"
SIMULATED_TURN_PAUSE_SECONDS = 0.35
POST_FLOW_TURN_PAUSE_SECONDS = 0.25
MESSAGING_TRANSCRIPT_LIMIT = 120

DEFAULT_PERSONA: dict[str, str] = {
    "label": "default",
    "age_range": "25-50",
    "style": "naturel",
}
MESSAGING_PERSONA: dict[str, str] = {
    "label": "Utilisateur WhatsApp",
    "age_range": "25-50",
    "style": "naturel",
}

PARKING_LOT_AGENT_OVERRIDE = (
    "MODE TEST PARKING LOT: Si l'utilisateur digresse pendant le bilan (stress/bruit/orga), "
    "réponds brièvement ET dis explicitement \"on pourra en reparler après / à la fin\" avant "
    "de revenir au bilan. Fais-le 1 fois (max) par sujet (ne boucle pas). Si l'utilisateur "
    "insiste 2 fois sur le même sujet, propose explicitement: \"on met le bilan en pause 2 "
    "minutes pour en parler maintenant, ou tu préfères qu'on finisse vite le bilan puis on y "
    "revient ?\""
)
PARKING_LOT_USER_INSTRUCTION = (
    "IMPORTANT : TU DOIS TESTER LE 'PARKING LOT'. Pendant le bilan, trouve un moment pour dire "
    "'on en reparle après' ou 'on verra ça à la fin' à propos d'un sujet (ex: ton organisation "
    "ou ton stress). Le but est de vérifier que Sophia le note et t'en reparle après le bilan."
)
POST_FLOW_USER_INSTRUCTION = "\n".join(
    [
        "=== CONSIGNE TEST PARKING LOT ===",
        "Si Sophia te propose de reprendre un sujet après bilan, réponds 'Oui'.",
        "Quand elle te demande 'c'est bon pour ce point ?', réponds "
        "'C'est bon, on passe au suivant.'",
    ]
)
MESSAGING_CONTEXT = "Canal: WhatsApp. Tu réponds comme un humain sur WhatsApp (messages courts). "
MESSAGING_FORCE_TURNS = (
    "IMPORTANT: ne termine pas la conversation trop tôt. Même si tu penses que c'est bon, "
    "continue de répondre naturellement jusqu'à la fin du test."
)
MESSAGING_MAY_FINISH = (
    "Tu peux répondre 'C'est bon' si tu as finalisé le plan, ou poser une question si tu "
    "ne comprends pas."
)


class ConversationDriver:
    """Drives a scenario through not_started -> turns -> post-flow -> done.

    Web scenarios with steps replay them (scripted), web scenarios without
    steps ask the user simulator for every turn, and messaging scenarios
    deliver webhook payloads. The driver holds no per-scenario state; each
    call to drive() works on its own copy of the session history.
    """

    def __init__(
        self,
        agent: AgentUnderTest,
        simulator: UserSimulator,
        transport: WebhookTransport,
        state_reader: StateReader,
        observer: ConversationObserver,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._agent = agent
        self._simulator = simulator
        self._transport = transport
        self._state_reader = state_reader
        self._observer = observer
        self._sleep = sleep

    async def drive(
        self,
        scenario: Scenario,
        session: ConversationSession,
        plan_activator: PlanActivator | None = None,
    ) -> ConversationOutcome:
        """Run the scenario's turns and return the normalised transcript.

        Raises:
            AgentReplyMissingError: if a simulated turn gets no usable reply.
            WebhookDeliveryError: if the messaging webhook rejects a payload.
            ConvoEvalError: propagated from the agent or simulator adapters.
        """
        history = list(session.history)
        phases = [DriverPhase.NOT_STARTED]
        self._observer.conversation_started(
            request_id=session.request_id,
            scenario_id=scenario.id,
            channel=scenario.channel,
            resumed_turns=count_user_turns(history),
        )

        mechanical_transcript: list[ChatMessage] | None = None
        mechanical_profile: dict[str, Any] | None = None

        if scenario.is_messaging:
            self._enter(session, phases, DriverPhase.WEBHOOK_TURNS)
            mechanical_transcript, mechanical_profile = await self._webhook_turns(
                scenario=scenario, session=session, plan_activator=plan_activator
            )
            history = await self._state_reader.messages(
                user_id=session.user_id, scope=session.scope
            )
        elif scenario.steps:
            meta = self._agent_meta(session)
            kickoff_planned = self._kickoff_planned(scenario, session)
            if kickoff_planned and not history:
                await self._kickoff(session, history, meta)
            self._enter(session, phases, DriverPhase.SCRIPTED_TURNS)
            await self._scripted_turns(scenario, session, history, meta, kickoff_planned)
            if session.bilan_actions_count > 0 and session.deferral:
                self._enter(session, phases, DriverPhase.POST_FLOW_TURNS)
                await self._post_flow_turns(scenario, session, history, meta)
        else:
            self._enter(session, phases, DriverPhase.SIMULATED_TURNS)
            await self._simulated_turns(scenario, session, history)

        self._enter(session, phases, DriverPhase.DONE)
        transcript = build_transcript(history)
        turns_executed = count_user_turns(transcript)
        completed_reason = "max_turns" if turns_executed >= session.max_turns else "done"
        self._observer.conversation_completed(
            request_id=session.request_id,
            turns_executed=turns_executed,
            completed_reason=completed_reason,
        )
        return ConversationOutcome(
            transcript=transcript,
            turns_executed=turns_executed,
            completed_reason=completed_reason,
            phases=phases,
            mechanical_transcript=(
                build_transcript(mechanical_transcript)
                if mechanical_transcript is not None
                else None
            ),
            mechanical_profile=mechanical_profile,
        )

    # ------------------------------------------------------------------
    # Web channel
    # ------------------------------------------------------------------

    def _agent_meta(self, session: ConversationSession) -> AgentCallMeta:
        deferral_eligible = session.deferral and is_checkup_running(
            session.chat_state_before
        )
        return AgentCallMeta(
            request_id=session.request_id,
            eval_run_id=session.eval_run_id,
            model=session.model,
            channel="web",
            scope=session.scope,
            context_override=PARKING_LOT_AGENT_OVERRIDE if deferral_eligible else None,
            force_real_ai=session.use_real_ai,
        )

    def _kickoff_planned(self, scenario: Scenario, session: ConversationSession) -> bool:
        first = scenario.steps[0].user if scenario.steps else ""
        return session.bilan_actions_count > 0 and not (
            looks_affirmative(first) or looks_like_checkup_intent(first)
        )

    async def _kickoff(
        self, session: ConversationSession, history: list[ChatMessage], meta: AgentCallMeta
    ) -> None:
        reply = await self._call_agent(session, KICKOFF_MESSAGE, history, meta)
        history.append(user(KICKOFF_MESSAGE))
        history.append(assistant(reply.content, reply.mode))
        self._observer.conversation_kickoff_sent(
            request_id=session.request_id, message=KICKOFF_MESSAGE
        )

    async def _scripted_turns(
        self,
        scenario: Scenario,
        session: ConversationSession,
        history: list[ChatMessage],
        meta: AgentCallMeta,
        kickoff_planned: bool,
    ) -> None:
        kickoff_offset = (
            1
            if kickoff_planned
            and history
            and normalize(history[0].content) == normalize(KICKOFF_MESSAGE)
            else 0
        )
        start = max(0, count_user_turns(history) - kickoff_offset)
        steps = scenario.steps[start : session.max_turns]

        i = 0
        while i < len(steps):
            step = steps[i]
            group = [m for m in (step.burst_group or []) if m.strip()]
            if step.burst_delay_ms and group:
                await self._burst(session, history, meta, [step.user, *group], step.burst_delay_ms)
                i += 1
                continue
            if step.burst_delay_ms and i + 1 < len(steps):
                # The pair consumes the following step.
                pair = [step.user, steps[i + 1].user]
                await self._burst(session, history, meta, pair, step.burst_delay_ms)
                i += 2
                continue

            reply = await self._call_agent(session, step.user, history, meta)
            history.append(user(step.user))
            history.append(assistant(reply.content, reply.mode))
            self._observer.conversation_turn_completed(
                request_id=session.request_id,
                kind="step",
                turn=start + i,
                assistant_mode=reply.mode,
            )
            i += 1

            if session.bilan_actions_count > 0:
                state = await self._state_reader.chat_state(
                    user_id=session.user_id, scope="web"
                )
                finished = (
                    is_post_checkup_done(state)
                    if session.deferral
                    else is_checkup_complete(state)
                )
                if finished:
                    break

    async def _burst(
        self,
        session: ConversationSession,
        history: list[ChatMessage],
        meta: AgentCallMeta,
        messages: list[str],
        delay_ms: int,
    ) -> None:
        """Launch every message while the earlier calls are still in flight.

        A failed call cancels its siblings and surfaces as the first
        ConvoEvalError of the group, so one scenario fails alone.
        """
        snapshot = list(history)
        tasks: list[asyncio.Task[AgentReply]] = []
        try:
            async with asyncio.TaskGroup() as tg:
                for k, message in enumerate(messages):
                    if k > 0:
                        await self._sleep(delay_ms / 1000.0)
                    tasks.append(
                        tg.create_task(
                            self._agent.process(
                                user_id=session.user_id,
                                message=message,
                                history=snapshot,
                                meta=meta,
                            )
                        )
                    )
        except ExceptionGroup as group:
            failure = next(
                (e for e in group.exceptions if isinstance(e, ConvoEvalError)), None
            )
            if failure is None:
                raise
            raise failure from group

        history.extend(user(m) for m in messages)
        kept = [t.result() for t in tasks if t.result().usable]
        history.extend(assistant(r.content, r.mode) for r in kept)
        self._observer.conversation_burst_completed(
            request_id=session.request_id,
            size=len(messages),
            delay_ms=delay_ms,
            replies_kept=len(kept),
        )

    async def _post_flow_turns(
        self,
        scenario: Scenario,
        session: ConversationSession,
        history: list[ChatMessage],
        meta: AgentCallMeta,
    ) -> None:
        budget = max(0, session.max_turns - len(scenario.steps))
        for extra_turn in range(budget):
            state = await self._state_reader.chat_state(user_id=session.user_id, scope="web")
            if is_post_checkup_done(state):
                return

            request = SimulationRequest(
                persona=scenario.persona or DEFAULT_PERSONA,
                objectives=scenario.objectives,
                transcript=build_transcript(history),
                turn_index=extra_turn,
                max_turns=session.max_turns,
                difficulty=session.difficulty,
                context=POST_FLOW_USER_INSTRUCTION,
                model=session.model,
                force_real_ai=session.use_real_ai,
                allow_empty=True,
            )
            try:
                turn = await self._simulator.simulate(
                    request=request, request_id=session.request_id
                )
                message = turn.next_message or KICKOFF_MESSAGE
            except ConvoEvalError as exc:
                self._observer.conversation_simulator_fallback(
                    request_id=session.request_id, reason=str(exc)
                )
                message = KICKOFF_MESSAGE

            reply = await self._call_agent(session, message, history, meta)
            history.append(user(message))
            history.append(assistant(reply.content, reply.mode))
            self._observer.conversation_turn_completed(
                request_id=session.request_id,
                kind="post_flow",
                turn=extra_turn,
                assistant_mode=reply.mode,
            )
            await self._sleep(POST_FLOW_TURN_PAUSE_SECONDS)

    async def _simulated_turns(
        self,
        scenario: Scenario,
        session: ConversationSession,
        history: list[ChatMessage],
    ) -> None:
        meta = self._agent_meta(session)
        turn = count_user_turns(history)
        done = False
        while not done and turn < session.max_turns:
            current_state = (
                await self._state_reader.chat_state(
                    user_id=session.user_id, scope=session.scope
                )
                or session.chat_state_before
            )

            last = history[-1] if history else None
            if last is not None and last.role == "user" and last.content.strip():
                # Interrupted after a user turn: answer it instead of inventing a new one.
                message, next_done = last.content, False
            else:
                simulated = await self._simulator.simulate(
                    request=SimulationRequest(
                        persona=scenario.persona or DEFAULT_PERSONA,
                        objectives=scenario.objectives,
                        suggested_replies=scenario.suggested_replies,
                        transcript=build_transcript(history),
                        turn_index=turn,
                        max_turns=session.max_turns,
                        difficulty=session.difficulty,
                        model=session.model,
                        force_real_ai=session.use_real_ai,
                        chat_state=current_state,
                        eval_run_id=session.eval_run_id,
                        context=self._simulation_context(session, current_state),
                    ),
                    request_id=session.request_id,
                )
                message, next_done = simulated.next_message, simulated.done

            reply = await self._call_agent(session, message, history, meta)
            if not reply.usable:
                raise AgentReplyMissingError(
                    reason="agent reply aborted" if reply.aborted else "agent reply empty"
                )
            self._append_exchange(session, history, message, reply)
            self._observer.conversation_turn_completed(
                request_id=session.request_id,
                kind="simulated",
                turn=turn,
                assistant_mode=reply.mode,
            )

            done = next_done
            if session.bilan_actions_count > 0:
                # The simulator cannot see server-side completion, so the checkup state wins.
                state = await self._state_reader.chat_state(user_id=session.user_id, scope="web")
                if session.deferral:
                    done = is_post_checkup_done(state)
                else:
                    done = is_checkup_complete(state)
            turn += 1
            await self._sleep(SIMULATED_TURN_PAUSE_SECONDS)

    def _simulation_context(
        self, session: ConversationSession, chat_state: dict[str, Any] | None
    ) -> str:
        return "\n".join(
            [
                "=== CONTEXTE PLAN (référence) ===",
                session.plan_context or "(vide)",
                "",
                "=== ÉTAT CHAT ACTUEL (référence) ===",
                json.dumps(chat_state, indent=2, ensure_ascii=False, default=str),
                "",
                "=== CONSIGNE DE TEST SPÉCIFIQUE (EVAL RUNNER) ===",
                PARKING_LOT_USER_INSTRUCTION if session.deferral else "",
            ]
        )

    def _append_exchange(
        self,
        session: ConversationSession,
        history: list[ChatMessage],
        message: str,
        reply: AgentReply,
    ) -> None:
        """Append one user/assistant exchange without duplicating either side."""
        last_user = next((m for m in reversed(history) if m.role == "user"), None)
        wanted = normalize(message)
        if wanted and last_user is not None and normalize(last_user.content) == wanted:
            self._skip(session, role="user", reason="duplicate")
        elif history and history[-1].role == "user":
            self._skip(session, role="user", reason="consecutive")
        else:
            history.append(user(message))

        if history and history[-1].role == "assistant":
            self._skip(session, role="assistant", reason="consecutive")
        else:
            history.append(assistant(reply.content, reply.mode))

    async def _call_agent(
        self,
        session: ConversationSession,
        message: str,
        history: list[ChatMessage],
        meta: AgentCallMeta,
    ) -> AgentReply:
        return await self._agent.process(
            user_id=session.user_id,
            message=message,
            history=list(history),
            meta=meta,
        )

    # ------------------------------------------------------------------
    # Messaging channel
    # ------------------------------------------------------------------

    async def _webhook_turns(
        self,
        scenario: Scenario,
        session: ConversationSession,
        plan_activator: PlanActivator | None,
    ) -> tuple[list[ChatMessage], dict[str, Any] | None]:
        default_sender = session.phone_number
        for idx, step in enumerate(scenario.wa_steps):
            await self._deliver(
                session,
                InboundMessage(
                    sender=digits_only(step.sender or default_sender),
                    message_id=webhook_message_id(session.request_id, idx),
                    kind=step.kind,
                    text=step.text,
                    interactive_id=step.interactive_id,
                    interactive_title=step.interactive_title or step.interactive_id,
                    profile_name=step.profile_name,
                ),
            )

        mechanical_transcript = await self._state_reader.messages(
            user_id=session.user_id, scope=session.scope, limit=MESSAGING_TRANSCRIPT_LIMIT
        )
        mechanical_profile = await self._state_reader.profile(user_id=session.user_id)

        if scenario.wa_auto_simulate:
            await self._auto_simulate(scenario, session, plan_activator)

        return mechanical_transcript, mechanical_profile

    async def _auto_simulate(
        self,
        scenario: Scenario,
        session: ConversationSession,
        plan_activator: PlanActivator | None,
    ) -> None:
        context = MESSAGING_CONTEXT + (
            MESSAGING_FORCE_TURNS if scenario.wa_force_turns else MESSAGING_MAY_FINISH
        )
        turn = len(scenario.wa_steps)
        while turn < session.max_turns:
            transcript = await self._state_reader.messages(
                user_id=session.user_id,
                scope=session.scope,
                limit=MESSAGING_TRANSCRIPT_LIMIT,
            )
            simulated = await self._simulator.simulate(
                request=SimulationRequest(
                    persona=scenario.persona or MESSAGING_PERSONA,
                    objectives=scenario.objectives,
                    transcript=transcript,
                    turn_index=turn,
                    max_turns=session.max_turns,
                    difficulty=session.difficulty,
                    context=context,
                    force_real_ai=session.use_real_ai,
                    allow_empty=True,
                ),
                request_id=session.request_id,
            )
            text = simulated.next_message.strip()
            if not text:
                break

            if (
                scenario.wa_simulate_plan_activation_on_done
                and plan_activator is not None
                and signals_done(text)
            ):
                await plan_activator(session.user_id)

            await self._deliver(
                session,
                InboundMessage(
                    sender=digits_only(session.phone_number),
                    message_id=webhook_message_id(session.request_id, f"sim_{turn}"),
                    text=text,
                ),
            )
            self._observer.conversation_turn_completed(
                request_id=session.request_id,
                kind="webhook_simulated",
                turn=turn,
                assistant_mode=None,
            )
            if not scenario.wa_force_turns and simulated.done:
                break
            turn += 1

    async def _deliver(self, session: ConversationSession, message: InboundMessage) -> None:
        delivery = await self._transport.deliver(
            payload=build_webhook_payload(message), request_id=session.request_id
        )
        if not delivery.ok:
            raise WebhookDeliveryError(status=delivery.status, body=delivery.body)
        self._observer.conversation_webhook_delivered(
            request_id=session.request_id,
            message_id=message.message_id,
            status=delivery.status,
        )

    # ------------------------------------------------------------------

    def _enter(
        self, session: ConversationSession, phases: list[DriverPhase], phase: DriverPhase
    ) -> None:
        phases.append(phase)
        self._observer.conversation_phase_entered(
            request_id=session.request_id, phase=phase.value
        )

    def _skip(self, session: ConversationSession, role: str, reason: str) -> None:
        self._observer.conversation_message_skipped(
            request_id=session.request_id, role=role, reason=reason
        )
