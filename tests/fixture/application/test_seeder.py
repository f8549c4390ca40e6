"""Tests for FixtureSeeder."""

from datetime import UTC, datetime

import pytest

from convo_eval.fixture.application.seeder import FixtureSeeder
from convo_eval.fixture.domain.errors import FixtureSeedError
from convo_eval.fixture.domain.seeding import SeedOptions
from convo_eval.scenario.domain.scenario import (
    PreseedAction,
    PreseedActionEntry,
    ScenarioSetup,
)
from tests.fixture.fake_observer import FakeFixtureObserver
from tests.fixture.fake_template_source import make_template
from tests.storage.fake_store import FakeStore

NOW = datetime(2026, 3, 10, 8, 0, tzinfo=UTC)
USER = "user-1"


def _seeder(store: FakeStore) -> tuple[FixtureSeeder, FakeFixtureObserver]:
    observer = FakeFixtureObserver()
    return FixtureSeeder(store=store, observer=observer, clock=lambda: NOW), observer


class TestWithoutPlan:
    async def test_only_marks_onboarding_done(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(make_template(), USER, SeedOptions(seed_plan=False))

        assert store.profiles[USER]["onboarding_completed"] is True
        assert store.goals == []
        assert store.plans == []
        assert result.plan_ref is None
        assert result.pending_items == []


class TestPlanContent:
    async def test_plan_row_carries_template_content(self) -> None:
        store = FakeStore()
        seeder, observer = _seeder(store)

        result = await seeder.seed(make_template(), USER, SeedOptions(active_count=0))

        plan = store.plans[0]
        assert plan["title"] == "Mieux dormir"
        assert plan["deep_why"] == "Retrouver de l'énergie."
        assert plan["goal_id"] == store.goals[0]["id"]
        assert result.plan_ref is not None
        assert result.plan_ref.plan_id == plan["id"]
        assert observer.seeding_completed[0].plan_id == plan["id"]

    async def test_phases_and_actions_are_activated(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        await seeder.seed(make_template(), USER, SeedOptions(active_count=2))

        phases = store.plans[0]["content"]["phases"]
        assert [p["status"] for p in phases] == ["active", "locked"]
        statuses = [a["status"] for p in phases for a in p["actions"]]
        assert statuses == ["active", "active", "pending", "pending"]

    async def test_action_ids_are_fresh(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        await seeder.seed(make_template(), USER, SeedOptions(active_count=0))

        ids = [a["id"] for p in store.plans[0]["content"]["phases"] for a in p["actions"]]
        assert not {"a1", "a2", "a3", "a4"} & set(ids)

    async def test_template_is_not_mutated(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)
        template = make_template()

        await seeder.seed(template, USER, SeedOptions(active_count=2))

        assert template.raw_content["phases"][0]["actions"][0]["id"] == "a1"


class TestTrackedItems:
    async def test_active_actions_become_rows_and_pending_items(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(make_template(), USER, SeedOptions(active_count=2))

        assert [a["title"] for a in store.actions] == ["Coucher 23h", "Ranger la chambre"]
        assert store.actions[0]["type"] == "habit"
        assert store.actions[0]["target_reps"] == 5
        assert store.actions[1]["target_reps"] == 1
        assert [i["type"] for i in result.pending_items] == ["action", "action"]

    async def test_framework_items_go_to_framework_table(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(make_template(), USER, SeedOptions(active_count=3))

        assert [f["title"] for f in store.frameworks] == ["Journal du soir"]
        assert store.frameworks[0]["type"] == "daily"
        assert [i["type"] for i in result.pending_items] == ["action", "action", "framework"]

    async def test_fillers_complete_the_requested_count(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(None, USER, SeedOptions(active_count=2))

        assert [a["title"] for a in store.actions] == ["Action (bilan) #1", "Action (bilan) #2"]
        assert len(result.pending_items) == 2

    async def test_vital_is_listed_first(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(
            make_template(), USER, SeedOptions(active_count=1, include_vitals_in_bilan=True)
        )

        assert store.vitals[0]["label"] == "Sommeil"
        assert [i["type"] for i in result.pending_items] == ["vital", "action"]

    async def test_checkup_state_is_written(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        result = await seeder.seed(make_template(), USER, SeedOptions(active_count=2))

        state = store.chat_states[(USER, "web")]
        assert state["current_mode"] == "investigator"
        assert state["investigation_state"]["status"] == "checking"
        assert state["investigation_state"]["pending_items"] == result.pending_items

    async def test_no_checkup_state_without_active_items(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        await seeder.seed(make_template(), USER, SeedOptions(active_count=0))

        assert store.chat_states == {}
        assert store.actions == []

    async def test_last_performed_is_two_days_ago(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        await seeder.seed(make_template(), USER, SeedOptions(active_count=1))

        assert store.actions[0]["last_performed_at"] == "2026-03-08T08:00:00+00:00"


class TestPreseed:
    async def test_active_preseed_is_inserted_and_pending_preseed_lives_in_plan(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)
        options = SeedOptions(
            active_count=0,
            preseed_actions=[
                PreseedAction(title="Lire", type="habit", target_reps=12),
                PreseedAction(title="Méditer", status="pending"),
            ],
        )

        await seeder.seed(make_template(), USER, options)

        assert [a["title"] for a in store.actions] == ["Lire"]
        assert store.actions[0]["target_reps"] == 7
        first_phase = store.plans[0]["content"]["phases"][0]["actions"]
        assert first_phase[-1]["title"] == "Méditer"
        assert first_phase[-1]["status"] == "pending"

    async def test_entries_backfill_matching_actions(self) -> None:
        store = FakeStore()
        seeder, observer = _seeder(store)
        options = SeedOptions(
            preseed_actions=[PreseedAction(title="Lire")],
            preseed_action_entries=[
                PreseedActionEntry(title="lire", days=3, status="completed"),
                PreseedActionEntry(title="Yoga"),
            ],
        )

        result = await seeder.seed(make_template(), USER, options)

        assert [e["performed_at"] for e in store.entries] == [
            "2026-03-07T12:00:00+00:00",
            "2026-03-08T12:00:00+00:00",
            "2026-03-09T12:00:00+00:00",
        ]
        assert all(e["status"] == "completed" for e in store.entries)
        assert result.skipped_entries == ["Yoga"]
        assert observer.skipped_entries[0].title == "Yoga"


class TestFailures:
    async def test_store_failure_becomes_seed_error(self) -> None:
        store = FakeStore(fail_on={"insert_plan"})
        seeder, observer = _seeder(store)

        with pytest.raises(FixtureSeedError, match="Failed to seed fixtures"):
            await seeder.seed(make_template(), USER, SeedOptions(active_count=1))

        assert observer.seeding_completed == []


class TestMessagingProfile:
    async def test_writes_phone_and_optin_fields(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)
        setup = ScenarioSetup(
            phone_number=" +33 6 12 34 56 78 ", phone_verified=True, whatsapp_opted_in=True
        )

        phone = await seeder.prepare_messaging_profile(USER, "e@example.com", setup)

        profile = store.profiles[USER]
        assert phone == "+33 6 12 34 56 78"
        assert profile["phone_number"] == phone
        assert profile["phone_verified_at"] == NOW.isoformat()
        assert profile["whatsapp_opted_in"] is True
        assert profile["trial_end"] == "2026-03-17T08:00:00+00:00"

    async def test_random_phone_when_none_given(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)

        phone = await seeder.prepare_messaging_profile(USER, "e@example.com", ScenarioSetup())

        assert phone.startswith("+1555")
        assert len(phone) == 15

    async def test_extra_setup_fields_are_forwarded(self) -> None:
        store = FakeStore()
        seeder, _ = _seeder(store)
        setup = ScenarioSetup.model_validate({"whatsapp_optout_reason": "stop"})

        await seeder.prepare_messaging_profile(USER, "e@example.com", setup)

        assert store.profiles[USER]["whatsapp_optout_reason"] == "stop"
