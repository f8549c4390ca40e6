"""FixtureObserver port: domain events for templating and seeding."""

from typing import Protocol


class FixtureObserver(Protocol):
    def fixture_template_build_started(self, source: str) -> None: ...

    def fixture_template_built(self, source: str, fingerprint: str) -> None: ...

    def fixture_template_failed(self, source: str, reason: str) -> None: ...

    def fixture_generation_retry(
        self, request_id: str, attempt: int, reason: str, backoff_seconds: float
    ) -> None: ...

    def fixture_plan_bank_loaded(self, path: str, total_entries: int) -> None: ...

    def fixture_seeding_started(self, user_id: str, active_count: int) -> None: ...

    def fixture_seeding_completed(
        self, user_id: str, plan_id: str | None, tracked_items: int, pending_items: int
    ) -> None: ...

    def fixture_preseed_entry_skipped(self, user_id: str, title: str, reason: str) -> None: ...
