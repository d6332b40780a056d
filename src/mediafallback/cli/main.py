"""
MediaFallback CLI - Main Entry Point

Command-line interface for inspecting and exercising the fallback engine.

Usage:
    mediafallback strategies                          # Show the catalog
    mediafallback plan -C proxy_server -n slow         # Show the execution plan
    mediafallback classify --downlink 4.5              # Classify a network sample
    mediafallback simulate -C proxy_server --fail proxy  # Dry-run a fallback
"""

import asyncio
import dataclasses
import json
from pathlib import Path
from typing import Optional, Sequence

import click

from loguru import logger

from mediafallback.core.capabilities import Capability, CapabilitySet
from mediafallback.core.catalog import Strategy
from mediafallback.core.config import EngineConfig, ExecutorConfig, get_config, load_config
from mediafallback.core.engine import FallbackEngine
from mediafallback.core.exceptions import AggregateFailure, MediaFallbackError
from mediafallback.core.logging_config import configure_logging
from mediafallback.core.network import NetworkCondition, NetworkSample, make_classifier

from .formatters import Colors, format_plan_table, format_report, format_strategy_table


CAPABILITY_CHOICES = [c.value for c in Capability]
NETWORK_CHOICES = [c.value for c in NetworkCondition]


def network_options(func):
    """Shared --network / raw-sample options."""
    func = click.option("--bandwidth", type=float, help="Bandwidth estimate in bits/s")(func)
    func = click.option("--downlink", type=float, help="Measured downlink in Mbps")(func)
    func = click.option("--effective-type", "-e", help="Connection class label (slow-2g, 2g, 3g, 4g)")(func)
    func = click.option(
        "--network", "-n",
        type=click.Choice(NETWORK_CHOICES, case_sensitive=False),
        help="Network condition (overrides the sample options)",
    )(func)
    return func


def capability_option(func):
    return click.option(
        "--cap", "-C", "caps",
        multiple=True,
        type=click.Choice(CAPABILITY_CHOICES, case_sensitive=False),
        help="Available capability (can use multiple times)",
    )(func)


def _network_input(network: Optional[str], effective_type: Optional[str],
                   downlink: Optional[float], bandwidth: Optional[float]):
    if network:
        return NetworkCondition.parse(network)
    if effective_type is None and downlink is None and bandwidth is None:
        return None
    return NetworkSample(effective_type=effective_type, downlink_mbps=downlink, bandwidth_bps=bandwidth)


def _echo_error(error: MediaFallbackError, output_json: bool) -> None:
    if output_json:
        click.echo(json.dumps(error.to_dict(), indent=2))
    else:
        click.echo(Colors.red(f"Error: {error.message}"), err=True)


def build_engine(config: EngineConfig, caps: Sequence[str], base_delay_ms: Optional[int] = None) -> FallbackEngine:
    if base_delay_ms is not None:
        config = dataclasses.replace(config, executor=ExecutorConfig(base_delay_ms=base_delay_ms))
    capabilities = CapabilitySet.of(*caps)
    return FallbackEngine(lambda: capabilities, config=config)


# ============================================================================
# CLI Group and Main Entry
# ============================================================================

@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to a mediafallback YAML config file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """
    MediaFallback - adaptive multi-strategy media delivery

    Inspect strategy plans, classify networks and simulate fallback runs.
    """
    ctx.ensure_object(dict)

    try:
        engine_config = load_config(Path(config)) if config else get_config()
    except MediaFallbackError as e:
        raise click.ClickException(e.message)

    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = engine_config

    configure_logging(
        level="DEBUG" if verbose else engine_config.observability.log_level,
        json_format=engine_config.observability.json_logs,
        enqueue=False,
    )


# ============================================================================
# CLI Commands
# ============================================================================

@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def strategies(ctx, output_json: bool):
    """
    Show the configured strategy catalog.

    Example:
        mediafallback strategies
    """
    config: EngineConfig = ctx.obj["config"]
    try:
        catalog = [Strategy.from_config(cfg) for cfg in config.strategies]
    except MediaFallbackError as e:
        raise click.ClickException(e.message)

    if output_json:
        click.echo(json.dumps([s.to_dict() for s in catalog], indent=2))
    else:
        click.echo(format_strategy_table(catalog))


@cli.command()
@capability_option
@network_options
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def plan(ctx, caps, network, effective_type, downlink, bandwidth, output_json: bool):
    """
    Show the ordered execution plan.

    Example:
        mediafallback plan -C proxy_server -C ffmpeg_support -n slow
    """
    try:
        engine = build_engine(ctx.obj["config"], caps)
        condition = engine.current_network(_network_input(network, effective_type, downlink, bandwidth))
        planned = engine.plan(network=condition)
    except MediaFallbackError as e:
        _echo_error(e, output_json)
        ctx.exit(1)

    if output_json:
        click.echo(json.dumps(
            {"network": condition.value, "plan": [p.to_dict() for p in planned]}, indent=2
        ))
    else:
        click.echo(f"Network: {condition.value}")
        click.echo(format_plan_table(planned))


@cli.command()
@click.option("--effective-type", "-e", help="Connection class label (slow-2g, 2g, 3g, 4g)")
@click.option("--downlink", type=float, help="Measured downlink in Mbps")
@click.option("--bandwidth", type=float, help="Bandwidth estimate in bits/s")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def classify(ctx, effective_type, downlink, bandwidth, output_json: bool):
    """
    Classify a network sample (label > downlink > bandwidth).

    Example:
        mediafallback classify --downlink 4.5
    """
    config: EngineConfig = ctx.obj["config"]
    try:
        sample = NetworkSample(effective_type=effective_type, downlink_mbps=downlink, bandwidth_bps=bandwidth)
    except MediaFallbackError as e:
        _echo_error(e, output_json)
        ctx.exit(1)

    condition = make_classifier(config.network)(sample)
    if output_json:
        click.echo(json.dumps({"sample": sample.to_dict(), "network": condition.value}, indent=2))
    else:
        click.echo(condition.value)


@cli.command()
@capability_option
@network_options
@click.option("--fail", "failing", multiple=True, help="Strategy whose operation always fails")
@click.option("--base-delay-ms", type=click.IntRange(min=0), default=None, help="Override the backoff base delay")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def simulate(ctx, caps, network, effective_type, downlink, bandwidth, failing, base_delay_ms, output_json):
    """
    Run a simulated fallback: every strategy succeeds unless named by --fail.

    Example:
        mediafallback simulate -C proxy_server --fail proxy --base-delay-ms 0
    """
    failing_names = set(failing)

    async def operation(strategy: Strategy) -> str:
        await asyncio.sleep(0)
        if strategy.name in failing_names:
            raise ConnectionError(f"simulated failure for {strategy.name}")
        return f"delivered via {strategy.name}"

    try:
        engine = build_engine(ctx.obj["config"], caps, base_delay_ms)
        network_input = _network_input(network, effective_type, downlink, bandwidth)
        result = asyncio.run(engine.execute(operation, network=network_input))
    except AggregateFailure as e:
        logger.debug(f"Simulation exhausted: {e.message}")
        if output_json:
            click.echo(json.dumps({"success": False, **e.to_dict()}, indent=2))
        else:
            click.echo(Colors.red("All strategies failed:"))
            for failure in e.failures:
                click.echo(f"  {failure.strategy}: {failure.attempts} attempts, last error: {failure.last_error}")
            click.echo(format_report(engine.get_performance_report()))
        ctx.exit(1)
    except MediaFallbackError as e:
        if output_json:
            click.echo(json.dumps({"success": False, **e.to_dict()}, indent=2))
        else:
            click.echo(Colors.red(f"Error: {e.message}"), err=True)
        ctx.exit(1)

    if output_json:
        click.echo(json.dumps({
            "success": True,
            "value": result.value,
            **result.to_dict(),
            "report": engine.get_performance_report(),
        }, indent=2))
    else:
        click.echo(Colors.green(f"{result.value} after {result.attempts} attempt(s)"))
        click.echo(format_report(engine.get_performance_report()))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
