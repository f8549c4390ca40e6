"""Tests for ConversationDriver."""

from typing import Any

import pytest

from convo_eval.conversation.application.driver import (
    KICKOFF_MESSAGE,
    PARKING_LOT_AGENT_OVERRIDE,
    ConversationDriver,
)
from convo_eval.conversation.domain.agent import AgentReply
from convo_eval.conversation.domain.errors import AgentReplyMissingError, WebhookDeliveryError
from convo_eval.conversation.domain.message import ChatMessage, assistant, user
from convo_eval.conversation.domain.outcome import DriverPhase
from convo_eval.conversation.domain.session import ConversationSession
from convo_eval.conversation.domain.simulator import SimulatedTurn
from convo_eval.conversation.infrastructure.errors import (
    AgentInvocationError,
    SimulatorInvocationError,
)
from convo_eval.scenario.domain.scenario import Scenario, ScenarioStep, WebhookStep
from tests.conversation.fake_agent import RendezvousAgent, ScriptedAgent
from tests.conversation.fake_observer import FakeConversationObserver
from tests.conversation.fake_simulator import ScriptedSimulator
from tests.conversation.fake_transport import RecordingTransport
from tests.storage.fake_store import FakeStore

USER = "user-1"


class _Sleeps:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class _Harness:
    def __init__(
        self,
        agent: ScriptedAgent | RendezvousAgent | None = None,
        simulator: ScriptedSimulator | None = None,
        transport: RecordingTransport | None = None,
        store: FakeStore | None = None,
    ) -> None:
        self.store = store if store is not None else FakeStore()
        self.agent = agent if agent is not None else ScriptedAgent()
        self.simulator = simulator if simulator is not None else ScriptedSimulator()
        self.transport = transport if transport is not None else RecordingTransport()
        self.observer = FakeConversationObserver()
        self.sleeps = _Sleeps()
        self.driver = ConversationDriver(
            agent=self.agent,
            simulator=self.simulator,
            transport=self.transport,
            state_reader=self.store,
            observer=self.observer,
            sleep=self.sleeps,
        )


def _session(**kwargs: Any) -> ConversationSession:
    data: dict[str, Any] = {
        "user_id": USER,
        "request_id": "batch:ds:s1",
        "max_turns": 8,
        "model": "gemini-2.5-flash",
    }
    data.update(kwargs)
    return ConversationSession.model_validate(data)


def _scripted(*messages: str, **kwargs: Any) -> Scenario:
    return Scenario(
        dataset_key="ds", id="s1", steps=[ScenarioStep(user=m) for m in messages], **kwargs
    )


def _checking_state(items: int) -> dict[str, Any]:
    return {
        "investigation_state": {
            "status": "checking",
            "pending_items": [{"id": str(n)} for n in range(items)],
            "current_item_index": 0,
        }
    }


class TestScriptedTurns:
    async def test_replays_every_step(self) -> None:
        h = _Harness()

        outcome = await h.driver.drive(_scripted("Salut", "Ça va ?"), _session())

        assert h.agent.messages == ["Salut", "Ça va ?"]
        assert [m.role for m in outcome.transcript] == ["user", "assistant"] * 2
        assert outcome.turns_executed == 2
        assert outcome.completed_reason == "done"
        assert outcome.phases == [
            DriverPhase.NOT_STARTED,
            DriverPhase.SCRIPTED_TURNS,
            DriverPhase.DONE,
        ]

    async def test_steps_are_capped_by_max_turns(self) -> None:
        h = _Harness()

        outcome = await h.driver.drive(_scripted("a", "b", "c"), _session(max_turns=2))

        assert h.agent.messages == ["a", "b"]
        assert outcome.completed_reason == "max_turns"

    async def test_history_grows_between_calls(self) -> None:
        h = _Harness()

        await h.driver.drive(_scripted("a", "b"), _session())

        assert [c.history_length for c in h.agent.calls] == [0, 2]

    async def test_resume_skips_completed_steps(self) -> None:
        h = _Harness()
        history = [user("a"), assistant("ok", "companion")]

        outcome = await h.driver.drive(_scripted("a", "b"), _session(history=history))

        assert h.agent.messages == ["b"]
        assert outcome.turns_executed == 2
        assert h.observer.started[0][3] == 1

    async def test_reply_mode_is_kept_on_assistant_messages(self) -> None:
        h = _Harness(agent=ScriptedAgent(replies=[AgentReply(content="Hey", mode="sentry")]))

        outcome = await h.driver.drive(_scripted("a"), _session())

        assert outcome.transcript[1].agent_used == "sentry"
        assert h.observer.turns[0].assistant_mode == "sentry"


class TestCheckupKickoff:
    async def test_kickoff_precedes_non_affirmative_first_step(self) -> None:
        store = FakeStore()
        store.set_chat_state(USER, "web", _checking_state(2))

        def advance(call: int, message: str) -> None:
            if call == 3:
                store.chat_states[(USER, "web")]["investigation_state"]["current_item_index"] = 2

        h = _Harness(agent=ScriptedAgent(on_call=advance), store=store)

        await h.driver.drive(
            _scripted("Ma semaine était dure", "Oui fait", "Encore ?"),
            _session(bilan_actions_count=2),
        )

        assert h.agent.messages == [KICKOFF_MESSAGE, "Ma semaine était dure", "Oui fait"]
        assert h.observer.kickoffs == [KICKOFF_MESSAGE]

    async def test_no_kickoff_when_user_opens_the_checkup(self) -> None:
        h = _Harness()
        h.store.set_chat_state(USER, "web", _checking_state(1))

        await h.driver.drive(_scripted("On fait le bilan ?"), _session(bilan_actions_count=1))

        assert h.agent.messages == ["On fait le bilan ?"]
        assert h.observer.kickoffs == []

    async def test_resumed_kickoff_is_not_counted_as_a_step(self) -> None:
        h = _Harness()
        h.store.set_chat_state(USER, "web", _checking_state(3))
        history = [user(KICKOFF_MESSAGE), assistant("On commence ?", "investigator")]

        await h.driver.drive(
            _scripted("Ma semaine", "Bof"), _session(bilan_actions_count=1, history=history)
        )

        assert h.agent.messages == ["Ma semaine", "Bof"]

    async def test_missing_checkup_state_ends_scripted_turns(self) -> None:
        h = _Harness()

        await h.driver.drive(_scripted("Oui", "b", "c"), _session(bilan_actions_count=1))

        assert h.agent.messages == ["Oui"]


class TestBurst:
    async def test_pair_is_sent_concurrently_with_snapshot_history(self) -> None:
        agent = ScriptedAgent(
            replies=[
                AgentReply(content="", aborted=True),
                AgentReply(content="Je suis là", mode="companion"),
            ]
        )
        h = _Harness(agent=agent)
        scenario = Scenario(
            dataset_key="ds",
            id="s1",
            steps=[
                ScenarioStep(user="Hello", burst_delay_ms=300),
                ScenarioStep(user="T'es là ?"),
            ],
        )

        outcome = await h.driver.drive(scenario, _session())

        assert agent.messages == ["Hello", "T'es là ?"]
        assert [c.history_length for c in agent.calls] == [0, 0]
        assert h.sleeps.calls == [0.3]
        assert [m.content for m in outcome.transcript] == ["Hello", "T'es là ?", "Je suis là"]
        assert h.observer.bursts[0].size == 2
        assert h.observer.bursts[0].replies_kept == 1

    async def test_burst_group_sends_every_message(self) -> None:
        h = _Harness()
        scenario = Scenario(
            dataset_key="ds",
            id="s1",
            steps=[ScenarioStep(user="a", burst_delay_ms=100, burst_group=["b", " ", "c"])],
        )

        await h.driver.drive(scenario, _session())

        assert h.agent.messages == ["a", "b", "c"]
        assert h.sleeps.calls == [0.1, 0.1]

    async def test_trailing_burst_step_is_sent_alone(self) -> None:
        h = _Harness()
        scenario = Scenario(
            dataset_key="ds", id="s1", steps=[ScenarioStep(user="seul", burst_delay_ms=200)]
        )

        await h.driver.drive(scenario, _session())

        assert h.agent.messages == ["seul"]
        assert h.observer.bursts == []

    async def test_burst_calls_are_in_flight_together(self) -> None:
        agent = RendezvousAgent()
        h = _Harness(agent=agent)
        scenario = Scenario(
            dataset_key="ds",
            id="s1",
            steps=[
                ScenarioStep(user="Hello", burst_delay_ms=300),
                ScenarioStep(user="T'es là ?"),
            ],
        )

        outcome = await h.driver.drive(scenario, _session())

        assert agent.max_in_flight == 2
        assert [m.content for m in outcome.transcript][-2:] == ["re: Hello", "re: T'es là ?"]

    async def test_failed_burst_call_raises_its_own_error(self) -> None:
        agent = ScriptedAgent(failures={"b": AgentInvocationError(reason="status 500")})
        h = _Harness(agent=agent)
        scenario = Scenario(
            dataset_key="ds",
            id="s1",
            steps=[ScenarioStep(user="a", burst_delay_ms=100, burst_group=["b"])],
        )

        with pytest.raises(AgentInvocationError, match="status 500"):
            await h.driver.drive(scenario, _session())

        assert h.observer.bursts == []


class TestPostFlow:
    async def test_parking_lot_turns_run_until_post_checkup_done(self) -> None:
        store = FakeStore()
        store.set_chat_state(USER, "web", _checking_state(1))

        def finish(call: int, message: str) -> None:
            if call == 3:
                store.chat_states[(USER, "web")]["investigation_state"] = {
                    "status": "post_checkup_done"
                }

        h = _Harness(
            agent=ScriptedAgent(on_call=finish),
            simulator=ScriptedSimulator(turns=[SimulatedTurn(next_message="Et mon stress ?")]),
            store=store,
        )
        session = _session(
            bilan_actions_count=1,
            deferral=True,
            max_turns=4,
            chat_state_before=_checking_state(1),
        )

        outcome = await h.driver.drive(_scripted("Je suis stressé"), session)

        assert h.agent.messages == [KICKOFF_MESSAGE, "Je suis stressé", "Et mon stress ?"]
        assert h.agent.calls[0].meta.context_override == PARKING_LOT_AGENT_OVERRIDE
        assert DriverPhase.POST_FLOW_TURNS in outcome.phases
        assert [t.kind for t in h.observer.turns] == ["step", "post_flow"]

    async def test_simulator_failure_falls_back_to_kickoff_message(self) -> None:
        simulator = ScriptedSimulator(error=SimulatorInvocationError("boom"))
        h = _Harness(simulator=simulator)
        h.store.set_chat_state(USER, "web", _checking_state(1))
        session = _session(bilan_actions_count=1, deferral=True, max_turns=2)

        await h.driver.drive(_scripted("Oui"), session)

        assert h.agent.messages == ["Oui", KICKOFF_MESSAGE]
        assert len(h.observer.fallbacks) == 1


class TestSimulatedTurns:
    async def test_simulator_drives_until_done(self) -> None:
        simulator = ScriptedSimulator(
            turns=[
                SimulatedTurn(next_message="Salut"),
                SimulatedTurn(next_message="Merci, bonne soirée", done=True),
            ]
        )
        h = _Harness(simulator=simulator)
        scenario = Scenario(dataset_key="ds", id="s1", suggested_replies=["Oui", "Non"])

        outcome = await h.driver.drive(scenario, _session(plan_context="Plan: dormir"))

        assert h.agent.messages == ["Salut", "Merci, bonne soirée"]
        assert outcome.turns_executed == 2
        assert outcome.phases[1] == DriverPhase.SIMULATED_TURNS
        request = simulator.requests[1]
        assert request.turn_index == 1
        assert request.suggested_replies == ["Oui", "Non"]
        assert "Plan: dormir" in request.context
        assert [m.content for m in request.transcript][:2] == ["Salut", "D'accord."]

    async def test_simulated_ai_flag_reaches_agent_and_simulator(self) -> None:
        simulator = ScriptedSimulator(turns=[SimulatedTurn(next_message="Salut", done=True)])
        h = _Harness(simulator=simulator)

        await h.driver.drive(Scenario(dataset_key="ds", id="s1"), _session(use_real_ai=False))

        assert simulator.requests[0].force_real_ai is False
        assert h.agent.calls[0].meta.force_real_ai is False

    async def test_max_turns_bounds_the_loop(self) -> None:
        simulator = ScriptedSimulator(
            turns=[SimulatedTurn(next_message=f"m{n}") for n in range(5)]
        )
        h = _Harness(simulator=simulator)

        scenario = Scenario(dataset_key="ds", id="s1")
        outcome = await h.driver.drive(scenario, _session(max_turns=3))

        assert h.agent.messages == ["m0", "m1", "m2"]
        assert outcome.completed_reason == "max_turns"

    async def test_aborted_reply_fails_the_conversation(self) -> None:
        h = _Harness(
            agent=ScriptedAgent(default=AgentReply(content="", aborted=True)),
            simulator=ScriptedSimulator(turns=[SimulatedTurn(next_message="Salut")]),
        )

        with pytest.raises(AgentReplyMissingError, match="aborted"):
            await h.driver.drive(Scenario(dataset_key="ds", id="s1"), _session())

    async def test_dangling_user_turn_is_answered_not_duplicated(self) -> None:
        h = _Harness()
        history: list[ChatMessage] = [user("Tu es là ?")]

        outcome = await h.driver.drive(
            Scenario(dataset_key="ds", id="s1"), _session(history=history, max_turns=2)
        )

        assert h.simulator.requests == []
        assert h.agent.messages == ["Tu es là ?"]
        assert h.observer.skipped == [("user", "duplicate")]
        assert [m.role for m in outcome.transcript] == ["user", "assistant"]

    async def test_checkup_state_overrides_simulator_done(self) -> None:
        simulator = ScriptedSimulator(
            turns=[
                SimulatedTurn(next_message="Fini", done=True),
                SimulatedTurn(next_message="Ok", done=False),
            ]
        )
        store = FakeStore()
        store.set_chat_state(USER, "web", _checking_state(2))

        def advance(call: int, message: str) -> None:
            if call == 2:
                store.chat_states[(USER, "web")]["investigation_state"]["status"] = "done"

        h = _Harness(agent=ScriptedAgent(on_call=advance), simulator=simulator, store=store)

        scenario = Scenario(dataset_key="ds", id="s1")
        await h.driver.drive(scenario, _session(bilan_actions_count=1))

        assert h.agent.messages == ["Fini", "Ok"]


def _messaging(**kwargs: Any) -> Scenario:
    data: dict[str, Any] = {
        "dataset_key": "wa",
        "id": "optin",
        "channel": "whatsapp",
        "wa_steps": [
            WebhookStep(text="Bonjour"),
            WebhookStep(kind="interactive", interactive_id="OPTIN_YES"),
        ],
    }
    data.update(kwargs)
    return Scenario.model_validate(data)


class TestWebhookTurns:
    async def test_delivers_each_step_as_webhook_payload(self) -> None:
        h = _Harness()
        session = _session(scope="whatsapp", phone_number="+33 6 12 34 56 78")

        await h.driver.drive(_messaging(), session)

        first, second = h.transport.messages
        assert first["from"] == "33612345678"
        assert first["type"] == "text"
        assert first["text"] == {"body": "Bonjour"}
        assert second["interactive"]["button_reply"] == {
            "id": "OPTIN_YES",
            "title": "OPTIN_YES",
        }
        assert first["id"] == "wamid_batchdss1_0"
        assert [w[1] for w in h.observer.webhooks] == [200, 200]
        assert h.agent.calls == []

    async def test_transcript_and_profile_come_from_the_store(self) -> None:
        h = _Harness()
        h.store.add_messages(
            USER, "whatsapp", [user("Bonjour"), assistant("Bienvenue !", "onboarding")]
        )
        h.store.profiles[USER] = {"id": USER, "whatsapp_opted_in": True}

        outcome = await h.driver.drive(_messaging(), _session(scope="whatsapp"))

        assert [m.content for m in outcome.transcript] == ["Bonjour", "Bienvenue !"]
        assert outcome.mechanical_transcript == outcome.transcript
        assert outcome.mechanical_profile == {"id": USER, "whatsapp_opted_in": True}

    async def test_rejected_delivery_is_fatal(self) -> None:
        h = _Harness(transport=RecordingTransport(status=500))

        with pytest.raises(WebhookDeliveryError) as exc_info:
            await h.driver.drive(_messaging(), _session(scope="whatsapp"))

        assert exc_info.value.status == 500

    async def test_auto_simulation_activates_plan_on_done(self) -> None:
        simulator = ScriptedSimulator(
            turns=[SimulatedTurn(next_message="C'est bon, merci", done=True)]
        )
        h = _Harness(simulator=simulator)
        activated: list[str] = []

        async def activate(user_id: str) -> None:
            activated.append(user_id)

        scenario = _messaging(
            wa_auto_simulate=True, wa_simulate_plan_activation_on_done=True
        )
        await h.driver.drive(scenario, _session(scope="whatsapp", max_turns=5), activate)

        assert activated == [USER]
        assert len(h.transport.payloads) == 3
        assert h.transport.messages[2]["id"] == "wamid_batchdss1_sim_2"
        assert simulator.requests[0].allow_empty is True

    async def test_forced_turns_ignore_done_until_silence(self) -> None:
        simulator = ScriptedSimulator(
            turns=[
                SimulatedTurn(next_message="Ok", done=True),
                SimulatedTurn(next_message="Et après ?", done=True),
            ]
        )
        h = _Harness(simulator=simulator)
        scenario = _messaging(wa_auto_simulate=True, wa_force_turns=True)

        await h.driver.drive(scenario, _session(scope="whatsapp", max_turns=8))

        assert len(h.transport.payloads) == 4
        assert len(simulator.requests) == 3
