"""FixtureSeeder: provisions the plan, tracked items and checkup state for one identity."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from convo_eval.core.errors import ConvoEvalError
from convo_eval.core.ids import new_id
from convo_eval.core.sampling import random_digits
from convo_eval.fixture.domain.errors import FixtureSeedError
from convo_eval.fixture.domain.observer import FixtureObserver
from convo_eval.fixture.domain.plan_content import (
    active_actions,
    append_to_first_phase,
    apply_activation,
    empty_plan_content,
    reassign_action_ids,
)
from convo_eval.fixture.domain.seeding import (
    PlanRef,
    SeedOptions,
    SeedResult,
    action_pending_item,
    checkup_chat_state,
    entry_rows,
    filler_action_row,
    forced_vital_row,
    framework_pending_item,
    framework_row,
    generated_action_row,
    goal_row,
    plan_row,
    plan_vital_row,
    preseed_action_row,
    preseed_plan_item,
    vital_pending_item,
)
from convo_eval.fixture.domain.store import FixtureStore
from convo_eval.fixture.domain.template import PlanTemplate
from convo_eval.scenario.domain.scenario import ScenarioSetup

TRIAL_DAYS = 7


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FixtureSeeder:
    """Writes a consistent starting state for the agent under test.

    The checkup snapshot it writes lists vitals first, then actions, then
    frameworks, exactly as the agent derives it from the same rows.
    """

    def __init__(
        self,
        store: FixtureStore,
        observer: FixtureObserver,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._observer = observer
        self._clock = clock

    async def seed(
        self, template: PlanTemplate | None, user_id: str, options: SeedOptions
    ) -> SeedResult:
        """
        Seed fixtures for user_id from template (or an empty plan when None).

        Raises:
            FixtureSeedError: if any backing-store write fails.
        """
        self._observer.fixture_seeding_started(
            user_id=user_id, active_count=options.active_count
        )
        try:
            result = await self._seed(template=template, user_id=user_id, options=options)
        except FixtureSeedError:
            raise
        except ConvoEvalError as exc:
            raise FixtureSeedError(reason=str(exc)) from exc

        self._observer.fixture_seeding_completed(
            user_id=user_id,
            plan_id=result.plan_ref.plan_id if result.plan_ref else None,
            tracked_items=len(result.inserted_actions),
            pending_items=len(result.pending_items),
        )
        return result

    async def _seed(
        self, template: PlanTemplate | None, user_id: str, options: SeedOptions
    ) -> SeedResult:
        await self._store.update_profile(user_id, {"onboarding_completed": True})
        if not options.seed_plan:
            return SeedResult()

        now = self._clock()
        two_days_ago = (now - timedelta(hours=48)).isoformat()
        active_count = options.active_count

        submission_id = new_id()
        goal_id = await self._store.insert_goal(goal_row(user_id, submission_id))

        content = template.instantiate() if template is not None else empty_plan_content()
        apply_activation(reassign_action_ids(content), active_count)
        pending_preseeds = [a for a in options.preseed_actions if a.status == "pending"]
        # Pending preseeds live in the plan only, so activating one in conversation is observable.
        append_to_first_phase(content, [preseed_plan_item(a) for a in pending_preseeds])

        plan_id = await self._store.insert_plan(
            plan_row(
                user_id=user_id,
                goal_id=goal_id,
                submission_id=submission_id,
                content=content,
                fake_inputs=template.fake_inputs if template is not None else None,
            )
        )
        ref = PlanRef(user_id=user_id, plan_id=plan_id, submission_id=submission_id)

        inserted: list[dict[str, Any]] = []
        candidates: list[dict[str, Any]] = []

        preseed_rows = [
            preseed_action_row(a, ref, two_days_ago)
            for a in options.preseed_actions
            if a.status == "active"
        ]
        if preseed_rows:
            inserted += await self._store.insert_actions(preseed_rows)
            candidates += [action_pending_item(r) for r in preseed_rows]

        vitals: list[dict[str, Any]] = []
        if active_count > 0:
            to_check = active_actions(content)[:active_count]
            action_rows = [
                generated_action_row(item, ref, two_days_ago)
                for item in to_check
                if str(item.get("type") or "").lower() != "framework"
            ]
            if action_rows:
                inserted += await self._store.insert_actions(action_rows)
                candidates += [action_pending_item(r) for r in action_rows]

            framework_rows = [
                framework_row(item, ref, two_days_ago)
                for item in to_check
                if str(item.get("type") or "").lower() == "framework"
            ]
            if framework_rows:
                await self._store.insert_frameworks(framework_rows)
                candidates += [framework_pending_item(r) for r in framework_rows]

            missing = active_count - len(candidates)
            if missing > 0:
                filler_rows = [
                    filler_action_row(number, ref, two_days_ago)
                    for number in range(1, missing + 1)
                ]
                inserted += await self._store.insert_actions(filler_rows)
                candidates += [action_pending_item(r) for r in filler_rows]

            vital_row = None
            if options.include_vitals_in_bilan:
                vital_row = forced_vital_row(ref, two_days_ago)
            elif isinstance(content.get("vitalSignal"), dict):
                vital_row = plan_vital_row(content["vitalSignal"], ref, two_days_ago)
            if vital_row is not None:
                await self._store.insert_vital(vital_row)
                vitals.append(vital_pending_item(vital_row))

        pending_items = vitals + candidates[:active_count] if active_count > 0 else []
        if pending_items:
            await self._store.upsert_chat_state(checkup_chat_state(user_id, pending_items))

        skipped = await self._seed_entries(user_id=user_id, options=options, now=now)

        return SeedResult(
            plan_ref=ref,
            inserted_actions=inserted,
            pending_items=pending_items,
            skipped_entries=skipped,
        )

    async def _seed_entries(
        self, user_id: str, options: SeedOptions, now: datetime
    ) -> list[str]:
        """Backfill history for already-seeded actions; unknown titles are skipped."""
        if not options.preseed_action_entries:
            return []
        by_title: dict[str, dict[str, Any]] = {}
        for action in await self._store.list_actions(user_id):
            title = str(action.get("title") or "").strip().lower()
            if title:
                by_title[title] = action

        rows: list[dict[str, Any]] = []
        skipped: list[str] = []
        for entry in options.preseed_action_entries:
            action = by_title.get(entry.title.strip().lower())
            if action is None:
                skipped.append(entry.title)
                self._observer.fixture_preseed_entry_skipped(
                    user_id=user_id, title=entry.title, reason="no seeded action with this title"
                )
                continue
            rows += entry_rows(entry, action, user_id, now)
        if rows:
            await self._store.insert_action_entries(rows)
        return skipped

    async def prepare_messaging_profile(
        self, user_id: str, email: str, setup: ScenarioSetup
    ) -> str:
        """Write the messaging-channel profile fields and return the phone number."""
        now = self._clock()
        phone = (setup.phone_number or "").strip() or _random_phone()
        extra = setup.model_extra or {}
        fields: dict[str, Any] = {
            "email": email,
            "phone_number": phone,
            "phone_invalid": setup.phone_invalid,
            "phone_verified_at": now.isoformat() if setup.phone_verified else None,
            "trial_end": setup.trial_end or (now + timedelta(days=TRIAL_DAYS)).isoformat(),
            "whatsapp_opted_in": setup.whatsapp_opted_in,
            "whatsapp_opted_out_at": extra.get("whatsapp_opted_out_at"),
            "whatsapp_optout_reason": extra.get("whatsapp_optout_reason"),
            "whatsapp_optout_confirmed_at": extra.get("whatsapp_optout_confirmed_at"),
            "whatsapp_state": setup.whatsapp_state,
            "whatsapp_state_updated_at": now.isoformat() if setup.whatsapp_state else None,
        }
        try:
            await self._store.update_profile(user_id, fields)
        except ConvoEvalError as exc:
            raise FixtureSeedError(reason=str(exc)) from exc
        return phone


def _random_phone() -> str:
    return "+1555" + random_digits(10)
