"""CLI entrypoint for convo-eval: typer app with a `run` command."""

import asyncio
import json
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path

import structlog
import typer
from pydantic import ValidationError

from convo_eval.config.domain.config import EvalConfig
from convo_eval.config.domain.limits import RunLimits
from convo_eval.config.infrastructure.errors import ConfigValidationError
from convo_eval.config.infrastructure.observer import StructlogConfigObserver
from convo_eval.config.infrastructure.yaml_loader import YamlConfigLoader
from convo_eval.conversation.application.driver import ConversationDriver
from convo_eval.conversation.infrastructure.http_agent import HttpAgent
from convo_eval.conversation.infrastructure.http_simulator import HttpUserSimulator
from convo_eval.conversation.infrastructure.http_webhook import HttpWebhookTransport
from convo_eval.conversation.infrastructure.observer import StructlogConversationObserver
from convo_eval.core.errors import ConvoEvalError
from convo_eval.core.http import ServiceClient
from convo_eval.evaluation.application.orchestrator import RunOrchestrator
from convo_eval.evaluation.domain.observer import OrchestratorObserver
from convo_eval.evaluation.domain.summary import BatchResult
from convo_eval.evaluation.infrastructure.composite_observer import (
    CompositeOrchestratorObserver,
)
from convo_eval.evaluation.infrastructure.observer import StructlogOrchestratorObserver
from convo_eval.evaluation.infrastructure.progress_observer import (
    ProgressOrchestratorObserver,
)
from convo_eval.fixture.application.seeder import FixtureSeeder
from convo_eval.fixture.application.template_builder import TemplateBuilder
from convo_eval.fixture.application.template_sources import (
    BankTemplateSource,
    GeneratedTemplateSource,
    TemplateSource,
)
from convo_eval.fixture.infrastructure.http_generator import HttpPlanGenerator
from convo_eval.fixture.infrastructure.observer import StructlogFixtureObserver
from convo_eval.fixture.infrastructure.plan_bank import JsonPlanBankLoader
from convo_eval.judge.infrastructure.observer import StructlogJudgeObserver
from convo_eval.judge.infrastructure.registry import create_judge
from convo_eval.scenario.domain.scenario import Scenario
from convo_eval.scenario.infrastructure.json_loader import JsonScenarioLoader
from convo_eval.scenario.infrastructure.observer import StructlogScenarioObserver
from convo_eval.storage.infrastructure.supabase_store import SupabaseStore

app = typer.Typer(add_completion=False)


def _configure_structlog(log_format: str) -> None:
    """Configure structlog based on the requested format."""
    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    elif log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        typer.echo(f"Invalid log format: {log_format!r}. Must be 'console' or 'json'.")
        raise typer.Exit(code=1)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def apply_overrides(
    limits: RunLimits,
    max_scenarios: int | None,
    max_turns: int | None,
    budget_usd: float | None,
    stop_on_first_failure: bool,
) -> RunLimits:
    """Layer command-line overrides on top of the configured limits, re-validating bounds."""
    changes: dict[str, object] = {}
    if max_scenarios is not None:
        changes["max_scenarios"] = max_scenarios
    if max_turns is not None:
        changes["max_turns_per_scenario"] = max_turns
    if budget_usd is not None:
        changes["budget_usd"] = budget_usd
    if stop_on_first_failure:
        changes["stop_on_first_failure"] = True
    if not changes:
        return limits
    try:
        return RunLimits.model_validate({**limits.model_dump(), **changes})
    except ValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc


def output_stem(config_name: str, batch_request_id: str) -> str:
    """Build the output file stem: {config_name}_{YYYYMMDD}_{short_batch_id}."""
    date_str = datetime.now().strftime("%Y%m%d")
    short_id = batch_request_id.replace("-", "")[:8]
    return f"{config_name}_{date_str}_{short_id}"


def _template_source(
    config: EvalConfig,
    client: ServiceClient,
    batch_request_id: str,
    fixture_observer: StructlogFixtureObserver,
) -> TemplateSource:
    limits = config.limits
    if limits.use_pre_generated_plans:
        if config.plan_bank_path is None:
            raise ConfigValidationError("limits.use_pre_generated_plans requires plan_bank_path")
        entries = JsonPlanBankLoader(observer=fixture_observer).load(path=config.plan_bank_path)
        return BankTemplateSource(entries=entries, theme_key=limits.plan_bank_theme_key)
    generator = HttpPlanGenerator(
        client=client,
        path=config.services.plan_generator_path,
        retry=config.retry,
        observer=fixture_observer,
    )
    return GeneratedTemplateSource(generator=generator, request_id=f"{batch_request_id}:plan")


async def _run_batch(
    config: EvalConfig,
    scenarios: list[Scenario],
    batch_request_id: str,
    observer: OrchestratorObserver,
) -> BatchResult:
    services = config.services
    async with ServiceClient(
        base_url=services.base_url,
        api_key=services.anon_key,
        bearer_token=services.service_role_key,
        timeout=services.request_timeout_seconds,
    ) as client:
        store = SupabaseStore(client=client)
        fixture_observer = StructlogFixtureObserver()
        conversation_observer = StructlogConversationObserver()

        templates = TemplateBuilder(
            source=_template_source(
                config=config,
                client=client,
                batch_request_id=batch_request_id,
                fixture_observer=fixture_observer,
            ),
            observer=fixture_observer,
        )
        driver = ConversationDriver(
            agent=HttpAgent(
                client=client,
                path=services.agent_path,
                retry=config.retry,
                observer=conversation_observer,
            ),
            simulator=HttpUserSimulator(
                client=client,
                path=services.simulator_path,
                retry=config.retry,
                observer=conversation_observer,
            ),
            transport=HttpWebhookTransport(client=client, path=services.webhook_path),
            state_reader=store,
            observer=conversation_observer,
        )
        judge = create_judge(
            config=config.judge,
            retry=config.retry,
            client=client,
            judge_path=services.judge_path,
            observer=StructlogJudgeObserver(),
        )
        orchestrator = RunOrchestrator(
            limits=config.limits,
            registry=store,
            identities=store,
            templates=templates,
            seeder=FixtureSeeder(store=store, observer=fixture_observer),
            fixture_store=store,
            driver=driver,
            state_reader=store,
            judge=judge,
            observer=observer,
        )
        return await orchestrator.run(batch_request_id=batch_request_id, scenarios=scenarios)


def _write_output(output_dir: Path, stem: str, result: BatchResult) -> Path:
    json_path = output_dir / f"{stem}.json"
    json_path.write_text(
        json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return json_path


# ---------------------------------------------------------------------------
# ANSI helpers
# ---------------------------------------------------------------------------
_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_CYAN = "\033[36m"
_YELLOW = "\033[33m"
_GREEN = "\033[32m"
_RED = "\033[31m"
_WHITE = "\033[97m"


def _rule(width: int = 72, color: str = _DIM) -> None:
    typer.echo(f"{color}{'─' * width}{_RESET}")


def _format_elapsed(elapsed_seconds: float) -> str:
    """Format elapsed seconds as '1m 23.4s' or '5.2s'."""
    minutes, seconds = divmod(elapsed_seconds, 60)
    if minutes >= 1:
        return f"{int(minutes)}m {seconds:.1f}s"
    return f"{elapsed_seconds:.1f}s"


def _print_summary(
    config_name: str, result: BatchResult, json_path: Path, elapsed_seconds: float
) -> None:
    """Print the batch metadata and one row per scenario to stdout."""
    typer.echo("")
    _rule(color=_CYAN)
    typer.echo(f"{_CYAN}{_BOLD}  convo-eval  ·  Batch Complete{_RESET}")
    _rule(color=_CYAN)
    typer.echo("")

    meta_rows: list[tuple[str, str]] = [
        ("Batch ID", result.batch_request_id),
        ("Config", config_name),
        ("Scenarios", f"{result.ran}/{result.selected_scenarios} of {result.requested_scenarios}"),
        ("Plan template", result.plan_template_fingerprint or "-"),
        ("Cost", f"${result.total_cost_usd:.4f}"),
        ("Tokens", str(result.total_tokens)),
        ("Elapsed", _format_elapsed(elapsed_seconds=elapsed_seconds)),
        ("Batch JSON", str(json_path)),
    ]
    label_w = max(len(label) for label, _ in meta_rows)
    for label, value in meta_rows:
        typer.echo(f"  {_DIM}{label:<{label_w}}{_RESET}  {_WHITE}{value}{_RESET}")

    if result.results:
        typer.echo("")
        key_w = max(len(r.scenario_key) for r in result.results)
        typer.echo(
            f"  {_DIM}{'Scenario':<{key_w}}  {'Status':<9}  {'Turns':>5}  "
            f"{'Issues':>6}  {'Cost':>8}{_RESET}"
        )
        typer.echo(f"  {'─' * key_w}  {'─' * 9}  {'─' * 5}  {'─' * 6}  {'─' * 8}")
        for r in result.results:
            if r.status == "failed":
                color = _RED
            elif r.issues_count:
                color = _YELLOW
            else:
                color = _GREEN
            typer.echo(
                f"  {_WHITE}{r.scenario_key:<{key_w}}{_RESET}"
                f"  {color}{r.status:<9}{_RESET}"
                f"  {r.turns_executed:>5}"
                f"  {color}{r.issues_count:>6}{_RESET}"
                f"  {_DIM}{r.cost_usd:>8.4f}{_RESET}"
            )
            if r.error:
                typer.echo(f"    {_RED}{r.error}{_RESET}")

    if result.stopped_reason:
        typer.echo("")
        typer.echo(f"  {_YELLOW}{_BOLD}Stopped:{_RESET} {result.stopped_reason}")

    typer.echo("")
    _rule(color=_CYAN)
    typer.echo("")


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="Path to evaluation config YAML"),
    scenarios_path: Path = typer.Argument(..., help="Path to scenarios JSON or JSONL"),
    batch_id: str | None = typer.Option(
        None,
        "--batch-id",
        help="Batch request id; reuse one to resume an interrupted batch",
    ),
    output_dir: Path = typer.Option(
        Path("./results"),
        "--output-dir",
        "-o",
        help="Directory for output files",
    ),
    log_format: str = typer.Option(
        "console",
        "--log-format",
        help="Log format: 'console' or 'json'",
    ),
    max_scenarios: int | None = typer.Option(
        None, "--max-scenarios", help="Override limits.max_scenarios"
    ),
    max_turns: int | None = typer.Option(
        None, "--max-turns", help="Override limits.max_turns_per_scenario"
    ),
    budget_usd: float | None = typer.Option(
        None, "--budget-usd", help="Override limits.budget_usd"
    ),
    stop_on_first_failure: bool = typer.Option(
        False,
        "--stop-on-first-failure",
        help="Stop the batch at the first failed or flagged scenario",
    ),
) -> None:
    """Run a batch of conversation scenarios against the agent under test."""
    _configure_structlog(log_format=log_format)
    try:
        config = YamlConfigLoader(observer=StructlogConfigObserver()).load(path=config_path)
        scenarios = JsonScenarioLoader(observer=StructlogScenarioObserver()).load(
            path=scenarios_path
        )
        limits = apply_overrides(
            limits=config.limits,
            max_scenarios=max_scenarios,
            max_turns=max_turns,
            budget_usd=budget_usd,
            stop_on_first_failure=stop_on_first_failure,
        )
        config = config.model_copy(update={"limits": limits})

        output_dir.mkdir(parents=True, exist_ok=True)
        batch_request_id = batch_id or str(uuid.uuid4())

        observers: list[OrchestratorObserver] = [StructlogOrchestratorObserver()]
        if log_format != "json":
            observers.append(ProgressOrchestratorObserver())
        observer = CompositeOrchestratorObserver(observers=observers)

        started_at = time.monotonic()
        result = asyncio.run(
            _run_batch(
                config=config,
                scenarios=scenarios,
                batch_request_id=batch_request_id,
                observer=observer,
            )
        )
        elapsed_seconds = time.monotonic() - started_at

        stem = output_stem(config_name=config.name, batch_request_id=batch_request_id)
        json_path = _write_output(output_dir=output_dir, stem=stem, result=result)
        _print_summary(
            config_name=config.name,
            result=result,
            json_path=json_path,
            elapsed_seconds=elapsed_seconds,
        )

    except KeyboardInterrupt:
        typer.echo("Batch interrupted. Re-run with the same --batch-id to resume.")
        sys.exit(1)
    except ConvoEvalError as exc:
        typer.echo(str(exc))
        sys.exit(1)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"Unexpected error: {exc}\nPlease report this bug.")
        sys.exit(1)


if __name__ == "__main__":
    app()
