"""CLI entry point for Ignite concept tracking."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config, DEFAULT_CONFIG

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Ignite - Turn note clusters into stable, named concepts."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _get_config(ctx) -> dict:
    try:
        return load_config(ctx.obj.get("config_path"))
    except ValueError as e:
        raise click.ClickException(str(e))


def _get_namer(config: dict, offline: bool):
    from .naming import get_concept_namer

    try:
        return get_concept_namer(config, offline=offline)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)


def _print_naming_stats(stats) -> None:
    console.print(f"  Total concepts: {stats.total_concepts}")
    console.print(f"  Quizzable: {stats.quizzable_concept_count}")
    console.print(f"  Non-quizzable: {stats.non_quizzable_concept_count}")
    console.print(f"  Misfit notes removed: {stats.misfit_notes_removed}")
    console.print(f"  Naming batches: {stats.naming_batches}", end="")
    if stats.failed_batches:
        console.print(f" [red]({stats.failed_batches} failed, fallback names used)[/]")
    else:
        console.print()
    usage = stats.token_usage
    console.print(f"  Tokens: {usage.input_tokens} in / {usage.output_tokens} out (~${stats.estimated_cost:.4f})")


def _concept_table(concepts, limit: int = 10) -> Table:
    table = Table(title=f"Top {min(limit, len(concepts))} Concepts")
    table.add_column("", width=2)
    table.add_column("Concept", style="cyan")
    table.add_column("Notes", justify="right")
    table.add_column("Score", justify="right", style="green")
    for c in sorted(concepts, key=lambda c: len(c.note_ids), reverse=True)[:limit]:
        mark = "[green]✓[/]" if c.is_quizzable else "[red]✗[/]"
        table.add_row(mark, c.canonical_name, str(len(c.note_ids)), f"{c.quizzability_score:.2f}")
    return table


@cli.command()
@click.option("--path", default=None, help="Where to write config.yaml (default: ~/.ignite)")
def init(path):
    """Write a default configuration file."""
    import yaml

    base = Path(path).expanduser().resolve() if path else Path("~/.ignite").expanduser()
    base.mkdir(parents=True, exist_ok=True)
    config_file = base / "config.yaml"
    if config_file.exists():
        console.print(f"[yellow]Config already exists: {config_file}[/]")
        return

    header = (
        "# Claude API key for naming (or set ANTHROPIC_API_KEY env var)\n"
        "# claude_api_key: sk-ant-your-key-here\n\n"
        "# naming.backend: claude (LLM) or rules (offline pattern rules)\n\n"
    )
    config_file.write_text(header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False))
    console.print(f"[bold green]✓ Created config: {config_file}[/]")


@cli.command()
@click.argument("clusters_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default="outputs/concepts.json", help="Concepts output file")
@click.option("--offline", is_flag=True, help="Use offline pattern rules instead of Claude")
@click.pass_context
def name(ctx, clusters_path, output, offline):
    """Name clusters with the LLM and write tracked concepts."""
    from .pipeline import run_naming_pipeline
    from .store import load_clusters, save_concepts

    config = _get_config(ctx)
    namer = _get_namer(config, offline)

    try:
        clusters, title_lookup = load_clusters(clusters_path)
    except ValueError as e:
        raise click.ClickException(str(e))
    if not clusters:
        console.print("[yellow]No clusters to name.[/]")
        return

    console.print(f"[blue]Naming {len(clusters)} cluster(s) with {namer.model}...[/]")
    try:
        result = asyncio.run(run_naming_pipeline(clusters, title_lookup, namer, config))
    except ValueError as e:
        raise click.ClickException(str(e))

    save_concepts(output, result.concepts, result.stats.to_dict(), result.misfit_notes)
    console.print(f"[green]✓ Wrote {len(result.concepts)} concept(s) to {output}[/]")
    _print_naming_stats(result.stats)
    if result.concepts:
        console.print(_concept_table(result.concepts))


@cli.command()
@click.option("--old", "old_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Previous clusters file")
@click.option("--new", "new_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Current clusters file")
@click.option("--concepts", "concepts_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Concepts file")
@click.option("--output", "-o", default="outputs/evolution.json", help="Evolution report file")
@click.pass_context
def evolve(ctx, old_path, new_path, concepts_path, output):
    """Detect cluster evolution and report its effect on concepts (no LLM)."""
    from .evolution import EvolutionConfig, auto_evolve_batch, calculate_evolution_stats, detect_evolution
    from .store import evolution_report, load_clusters, load_concepts, write_json

    config = _get_config(ctx)
    try:
        evolution_config = EvolutionConfig.from_config(config)
    except ValueError as e:
        raise click.ClickException(str(e))

    try:
        old_clusters, _ = load_clusters(old_path)
        new_clusters, _ = load_clusters(new_path)
        concepts = load_concepts(concepts_path)
    except ValueError as e:
        raise click.ClickException(str(e))
    console.print(f"[blue]Comparing {len(old_clusters)} old vs {len(new_clusters)} new cluster(s), {len(concepts)} concept(s)...[/]")

    detection = detect_evolution(old_clusters, new_clusters, evolution_config)
    results = auto_evolve_batch(concepts, detection.evolutions)
    stats = calculate_evolution_stats(results)

    report = evolution_report(old_clusters, new_clusters, detection, concepts, results)
    write_json(output, report)

    summary = report["summary"]
    console.print(f"[green]✓ Evolution report saved to {output}[/]")
    console.print(f"  Renames (>= {evolution_config.rename_threshold:.0%} overlap): {summary['renames']}")
    console.print(f"  Remaps: {summary['remaps']}")
    console.print(f"  Dissolved (< {evolution_config.remap_threshold:.0%} overlap): {summary['dissolved']}")
    console.print(f"  New clusters: {len(detection.new_cluster_ids)}")
    console.print(
        f"\n  Concepts: {stats.unchanged} unchanged, {stats.renamed} renamed, "
        f"{stats.remapped} remapped, {stats.dissolved} dissolved"
    )


@cli.command()
@click.option("--old", "old_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Previous clusters file")
@click.option("--new", "new_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Current clusters file")
@click.option("--concepts", "concepts_path", required=True, type=click.Path(exists=True, dir_okay=False), help="Current concepts file")
@click.option("--output", "-o", default="outputs/concepts.json", help="Updated concepts file")
@click.option("--offline", is_flag=True, help="Use offline pattern rules instead of Claude")
@click.pass_context
def cycle(ctx, old_path, new_path, concepts_path, output, offline):
    """Run a full cycle: evolve existing concepts and name the new clusters."""
    from .pipeline import run_concept_cycle
    from .store import load_clusters, load_concepts, save_concepts

    config = _get_config(ctx)
    namer = _get_namer(config, offline)

    try:
        old_clusters, _ = load_clusters(old_path)
        new_clusters, title_lookup = load_clusters(new_path)
        concepts = load_concepts(concepts_path)
    except ValueError as e:
        raise click.ClickException(str(e))

    console.print(f"[blue]Running concept cycle over {len(new_clusters)} cluster(s) with {namer.model}...[/]")
    try:
        result = asyncio.run(run_concept_cycle(old_clusters, new_clusters, concepts, title_lookup, namer, config))
    except ValueError as e:
        raise click.ClickException(str(e))

    stats = result.naming.stats.to_dict()
    stats["evolution"] = result.evolution_stats.to_dict()
    stats["mergedConcepts"] = dict(result.reconcile.merged)
    save_concepts(output, result.concepts, stats, result.naming.misfit_notes)

    evo = result.evolution_stats
    console.print(f"[green]✓ Wrote {len(result.concepts)} concept(s) to {output}[/]")
    console.print(
        f"  Evolution: {evo.renamed} renamed, {evo.remapped} remapped, "
        f"{evo.dissolved} dissolved, {evo.unchanged} unchanged"
    )
    console.print(
        f"  Reconcile: {result.reconcile.updated} refreshed, {result.reconcile.created} new, "
        f"{len(result.reconcile.merged)} merged, {result.reconcile.dropped} dropped"
    )
    _print_naming_stats(result.naming.stats)


if __name__ == "__main__":
    cli()
