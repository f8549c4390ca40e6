"""ProgressOrchestratorObserver: renders a Rich batch progress bar to stderr."""

from __future__ import annotations

from rich.console import Console, Group
from rich.live import Live
from rich.progress import (
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text


class _CountsColumn(ProgressColumn):
    """Renders passed+failed/total with colors matching the bar segments."""

    def render(self, task: Task) -> Text:
        passed = int(task.fields.get("passed", 0))
        failed = int(task.fields.get("failed", 0))
        total = int(task.total or 0)
        return Text.assemble(
            (str(passed), "bright_green"),
            ("+", "dim white"),
            (str(failed), "red"),
            ("/", "dim white"),
            (str(total), "default"),
        )


class _SegmentBarColumn(ProgressColumn):
    """Renders four segments: passed, failed, in-flight, remaining."""

    def __init__(self, bar_width: int = 40) -> None:
        super().__init__()
        self.bar_width = bar_width

    def render(self, task: Task) -> Text:
        bar_width = self.bar_width or 40
        total = task.total or 0
        if total > 0:
            passed_cells = int(int(task.fields.get("passed", 0)) / total * bar_width)
            failed_cells = min(
                int(int(task.fields.get("failed", 0)) / total * bar_width),
                bar_width - passed_cells,
            )
            inflight_cells = min(
                int(int(task.fields.get("inflight", 0)) / total * bar_width),
                bar_width - passed_cells - failed_cells,
            )
        else:
            passed_cells = failed_cells = inflight_cells = 0
        remaining_cells = bar_width - passed_cells - failed_cells - inflight_cells

        result = Text()
        result.append("█" * passed_cells, style="bright_green")
        result.append("█" * failed_cells, style="red")
        result.append("▒" * inflight_cells, style="grey50")
        result.append("░" * remaining_cells, style="dim white")
        return result


def _make_progress(console: Console) -> Progress:
    return Progress(
        TextColumn("[bold]Scenarios[/bold]"),
        _SegmentBarColumn(bar_width=40),
        _CountsColumn(),
        TimeElapsedColumn(),
        TextColumn("{task.fields[cost]}"),
        TextColumn("{task.fields[current]}"),
        console=console,
        refresh_per_second=10,
        transient=False,
    )


class ProgressOrchestratorObserver:
    """Renders one batch progress bar plus a legend on stderr.

    Scenarios are sequential, so at most one is in flight. A scenario with
    issues counts as passed here: the bar tracks execution, not grading.

    Pass ``disabled=True`` to suppress all terminal output (useful in tests).

    Does NOT inherit from OrchestratorObserver (structural typing via Protocol).
    """

    def __init__(self, disabled: bool = False) -> None:
        self._disabled = disabled
        self.passed = 0
        self.failed = 0
        self.inflight = 0
        self.total = 0
        self.cost_usd = 0.0
        self._current = ""
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._live: Live | None = None

    def _update(self) -> None:
        if self._progress is None or self._task_id is None:
            return
        self._progress.update(
            self._task_id,
            completed=self.passed + self.failed,
            passed=self.passed,
            failed=self.failed,
            inflight=self.inflight,
            cost=f"${self.cost_usd:.4f}",
            current=self._current,
        )

    def batch_started(self, batch_request_id: str, total_scenarios: int) -> None:
        self.passed = 0
        self.failed = 0
        self.inflight = 0
        self.total = total_scenarios
        self.cost_usd = 0.0
        self._current = ""
        if self._disabled:
            return

        console = Console(stderr=True)
        self._progress = _make_progress(console=console)
        self._task_id = self._progress.add_task(
            description="Scenarios",
            total=float(total_scenarios),
            passed=0,
            failed=0,
            inflight=0,
            cost="$0.0000",
            current="",
        )
        legend = Text.assemble(
            "  Legend:  ",
            ("█", "bright_green"),
            " completed  ",
            ("█", "red"),
            " failed  ",
            ("▒", "grey50"),
            " running  ",
            ("░", "dim white"),
            " remaining",
        )
        self._live = Live(
            Group(self._progress, Text(""), legend), console=console, refresh_per_second=10
        )
        self._live.start()

    def batch_completed(
        self,
        batch_request_id: str,
        ran: int,
        total_cost_usd: float,
        elapsed_seconds: float,
    ) -> None:
        self.inflight = 0
        self.cost_usd = total_cost_usd
        self._current = ""
        self._update()
        if self._live is not None:
            self._live.stop()
        self._progress = None
        self._task_id = None
        self._live = None

    def batch_stopped(self, batch_request_id: str, reason: str) -> None:
        pass

    def scenario_started(
        self, request_id: str, scenario_key: str, index: int, total: int
    ) -> None:
        self.inflight = 1
        self._current = scenario_key
        self._update()

    def scenario_resumed(
        self, request_id: str, eval_run_id: str, test_user_id: str, resumed_turns: int
    ) -> None:
        pass

    def scenario_already_completed(self, request_id: str, eval_run_id: str) -> None:
        self.inflight = 0
        self.passed += 1
        self._update()

    def scenario_identity_created(self, request_id: str, test_user_id: str) -> None:
        pass

    def scenario_completed(
        self,
        request_id: str,
        scenario_key: str,
        issues: int,
        mechanical_issues: int,
        cost_usd: float,
    ) -> None:
        self.inflight = 0
        self.passed += 1
        self.cost_usd += cost_usd
        self._update()

    def scenario_failed(self, request_id: str, scenario_key: str, reason: str) -> None:
        self.inflight = 0
        self.failed += 1
        self._update()

    def identity_cleanup_failed(self, request_id: str, test_user_id: str, reason: str) -> None:
        pass

    def run_record_failed(self, request_id: str, reason: str) -> None:
        pass
