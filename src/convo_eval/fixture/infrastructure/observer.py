"""Structlog implementation of the FixtureObserver port."""

import structlog


class StructlogFixtureObserver:
    """Delegates fixture domain events to structlog.

    Satisfies the FixtureObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def fixture_template_build_started(self, source: str) -> None:
        self._log.info("fixture.template.build_started", source=source)

    def fixture_template_built(self, source: str, fingerprint: str) -> None:
        self._log.info("fixture.template.built", source=source, fingerprint=fingerprint)

    def fixture_template_failed(self, source: str, reason: str) -> None:
        self._log.error("fixture.template.failed", source=source, reason=reason)

    def fixture_generation_retry(
        self, request_id: str, attempt: int, reason: str, backoff_seconds: float
    ) -> None:
        self._log.warning(
            "fixture.generation.retry",
            request_id=request_id,
            attempt=attempt,
            reason=reason,
            backoff_seconds=backoff_seconds,
        )

    def fixture_plan_bank_loaded(self, path: str, total_entries: int) -> None:
        self._log.info("fixture.plan_bank.loaded", path=path, total_entries=total_entries)

    def fixture_seeding_started(self, user_id: str, active_count: int) -> None:
        self._log.info("fixture.seeding.started", user_id=user_id, active_count=active_count)

    def fixture_seeding_completed(
        self, user_id: str, plan_id: str | None, tracked_items: int, pending_items: int
    ) -> None:
        self._log.info(
            "fixture.seeding.completed",
            user_id=user_id,
            plan_id=plan_id,
            tracked_items=tracked_items,
            pending_items=pending_items,
        )

    def fixture_preseed_entry_skipped(self, user_id: str, title: str, reason: str) -> None:
        self._log.warning(
            "fixture.preseed_entry.skipped", user_id=user_id, title=title, reason=reason
        )
