"""Main CLI application.

Click commands for the quorum swarm engine: run, plan, models.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from typing import TYPE_CHECKING

import click

from quorum import __version__
from quorum.config.loader import load_config
from quorum.core.errors import (
    ConfigError,
    QuorumError,
    SwarmCancelledError,
    SwarmCollapsedError,
)

if TYPE_CHECKING:
    from quorum.cli.display import SwarmDisplay
    from quorum.config.schema import QuorumConfig
    from quorum.providers.manager import ProviderManager
    from quorum.swarm.engine import SwarmEngine
    from quorum.swarm.models import AtomicTask, SwarmResult
    from quorum.swarm.plan import PlanOutcome

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str, code: int = 1) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(code)


def _load_config(config_path: str | None) -> QuorumConfig:
    """Load config with user-friendly error handling."""
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


def _setup_logging(config: QuorumConfig, verbose: bool) -> None:
    """Configure the root logger from ``[logging]`` and ``--verbose``."""
    level_name = "DEBUG" if verbose else config.logging.level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        _error(f"Unknown log level: {config.logging.level}")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.logging.file:
        handlers.append(logging.FileHandler(config.logging.file, encoding="utf-8"))

    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)


async def _setup_providers(config: QuorumConfig) -> ProviderManager:
    """Instantiate and register providers from config."""
    from quorum.providers.manager import ProviderManager

    pm = ProviderManager(cost_hard_limit=config.cost.hard_limit)

    for name, prov_config in config.providers.items():
        if not prov_config.enabled:
            continue
        if prov_config.api_key is None:
            logger.debug("Skipping provider %s: no API key", name)
            continue

        if name == "google":
            from quorum.providers.google import GoogleProvider

            await pm.register(GoogleProvider(api_key=prov_config.api_key))
        elif name == "anthropic":
            from quorum.providers.anthropic import AnthropicProvider

            await pm.register(AnthropicProvider(api_key=prov_config.api_key))
        else:
            logger.warning("Unknown provider in config: %s", name)

    return pm


async def _build_engine(config: QuorumConfig, model_ref: str | None) -> SwarmEngine:
    """Wire providers, inference, and settings into an engine."""
    from quorum.swarm.engine import SwarmEngine, SwarmSettings
    from quorum.swarm.inference import ProviderInference

    pm = await _setup_providers(config)
    if not pm.available_models():
        _error(
            "No models available. Configure providers in "
            "~/.config/quorum/config.toml or set API key environment variables."
        )

    infer = ProviderInference.from_config(pm, config, model_ref)
    # Fail fast on a bad model ref instead of killing every attempt.
    pm.route(infer.model_ref)
    return SwarmEngine(infer, SwarmSettings.from_config(config.swarm))


def _install_cancel_handler(cancel: asyncio.Event) -> None:
    """Turn Ctrl-C into a graceful cancel of the current swarm run."""
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, cancel.set)


def _apply_swarm_overrides(
    config: QuorumConfig,
    *,
    gap: int | None,
    max_rounds: int | None,
    workers: int | None,
    delay: float | None,
) -> None:
    if gap is not None:
        config.swarm.target_gap = gap
    if max_rounds is not None:
        config.swarm.max_rounds = max_rounds
    if workers is not None:
        config.swarm.workers = workers
        config.swarm.scheduling = "pool" if workers > 1 else "sequential"
    if delay is not None:
        config.swarm.round_delay = delay


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="quorum")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """quorum - stateless swarm consensus.

    Ask one task many times, accept the answer that pulls ahead.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _swarm_options(fn):  # type: ignore[no-untyped-def]
    """Shared engine overrides for ``run`` and ``plan``."""
    options = [
        click.option(
            "--model",
            default=None,
            help="Model ref (e.g. google:gemini-2.5-flash).",
        ),
        click.option(
            "--gap", type=click.IntRange(min=1), default=None, help="Target lead K."
        ),
        click.option(
            "--max-rounds", type=click.IntRange(min=1), default=None, help="Round cap."
        ),
        click.option(
            "--workers",
            type=click.IntRange(min=1),
            default=None,
            help="Parallel attempts (1 = sequential).",
        ),
        click.option(
            "--delay",
            type=click.FloatRange(min=0.0),
            default=None,
            help="Seconds between rounds.",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


# ── run ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("instruction")
@click.option("--input", "isolated_input", default="", help="Isolated input data.")
@click.option("--id", "task_id", default="TASK_1", help="Task id for logs and ledger.")
@click.option("--ledger/--no-ledger", default=True, help="Show the vote ledger.")
@_swarm_options
@click.pass_context
def run(
    ctx: click.Context,
    instruction: str,
    isolated_input: str,
    task_id: str,
    ledger: bool,
    model: str | None,
    gap: int | None,
    max_rounds: int | None,
    workers: int | None,
    delay: float | None,
) -> None:
    """Run a single atomic task through the swarm.

    INSTRUCTION is sent verbatim to every attempt, together with
    --input and nothing else.
    """
    from quorum.cli.display import SwarmDisplay
    from quorum.swarm.models import AtomicTask

    config = _load_config(ctx.obj["config_path"])
    _setup_logging(config, ctx.obj["verbose"])
    _apply_swarm_overrides(
        config, gap=gap, max_rounds=max_rounds, workers=workers, delay=delay
    )

    task = AtomicTask(
        id=task_id, instruction=instruction, isolated_input=isolated_input
    )
    display = SwarmDisplay(max_rounds=config.swarm.max_rounds)

    try:
        result = asyncio.run(_run_async(task, config, model, display))
    except SwarmCollapsedError as e:
        display.show_collapse(e)
        sys.exit(1)
    except SwarmCancelledError as e:
        display.show_cancelled(e.task_id, e.rounds)
        sys.exit(130)
    except QuorumError as e:
        _error(str(e))
        return  # unreachable

    display.show_result(result)
    if ledger:
        display.show_ledger(result.vote_ledger)


async def _run_async(
    task: AtomicTask,
    config: QuorumConfig,
    model_ref: str | None,
    display: SwarmDisplay,
) -> SwarmResult:
    """Async implementation for the run command."""
    engine = await _build_engine(config, model_ref)
    cancel = asyncio.Event()
    _install_cancel_handler(cancel)

    display.start()
    display.task_header(task)
    return await engine.run(task, display.show_status, cancel=cancel)


# ── plan ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@_swarm_options
@click.pass_context
def plan(
    ctx: click.Context,
    path: str,
    model: str | None,
    gap: int | None,
    max_rounds: int | None,
    workers: int | None,
    delay: float | None,
) -> None:
    """Run every task in a plan file, one at a time.

    PATH is a JSON array of tasks with ``instruction`` and
    ``isolated_input`` fields.  Exits 1 if any task collapsed.
    """
    from quorum.cli.display import SwarmDisplay
    from quorum.swarm.plan import load_plan

    config = _load_config(ctx.obj["config_path"])
    _setup_logging(config, ctx.obj["verbose"])
    _apply_swarm_overrides(
        config, gap=gap, max_rounds=max_rounds, workers=workers, delay=delay
    )

    try:
        tasks = load_plan(path)
    except QuorumError as e:
        _error(str(e))
        return  # unreachable

    display = SwarmDisplay(max_rounds=config.swarm.max_rounds)
    outcomes: list[PlanOutcome] = []

    try:
        asyncio.run(_plan_async(tasks, config, model, display, outcomes))
    except SwarmCancelledError as e:
        display.show_cancelled(e.task_id, e.rounds)
        display.show_plan_summary(outcomes)
        sys.exit(130)
    except QuorumError as e:
        _error(str(e))
        return  # unreachable

    display.show_plan_summary(outcomes)
    if any(not o.ok for o in outcomes):
        sys.exit(1)


async def _plan_async(
    tasks: list[AtomicTask],
    config: QuorumConfig,
    model_ref: str | None,
    display: SwarmDisplay,
    outcomes: list[PlanOutcome],
) -> None:
    """Async implementation for the plan command.

    Outcomes are appended to *outcomes* as they finish so a cancelled
    plan can still report what completed.
    """
    from quorum.swarm.plan import run_plan

    engine = await _build_engine(config, model_ref)
    cancel = asyncio.Event()
    _install_cancel_handler(cancel)

    def _on_outcome(outcome: PlanOutcome) -> None:
        outcomes.append(outcome)
        if outcome.result is not None:
            display.show_result(outcome.result)
        elif outcome.error is not None:
            display.show_collapse(outcome.error)

    display.start()
    await run_plan(
        engine,
        tasks,
        on_status=display.show_status,
        on_task_start=display.task_header,
        on_outcome=_on_outcome,
        cancel=cancel,
    )


# ── models ───────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def models(ctx: click.Context) -> None:
    """List models from configured providers."""
    from quorum.cli.display import SwarmDisplay

    config = _load_config(ctx.obj["config_path"])
    _setup_logging(config, ctx.obj["verbose"])

    pm = asyncio.run(_setup_providers(config))
    available = pm.available_models()
    if not available:
        click.echo("No models available. Set GOOGLE_API_KEY or ANTHROPIC_API_KEY.")
        return

    SwarmDisplay().show_models(available, config.general.model_ref)
