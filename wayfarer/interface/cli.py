"""
Command-line interface for wayfarer.

A thin developer tool over WorldManager: seed a world, feed it mutation
batches from JSON files, fight, and inspect the result.

    wayfarer new
    wayfarer apply batch.json --action "I buy a sword"
    wayfarer fight npc_captain_hale
    wayfarer round attack
    wayfarer status
"""

import argparse
import json
import logging
import random
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import DEFAULT_CONFIG, load_config
from ..state import (
    DEFAULT_SLOT,
    WorldError,
    WorldManager,
    WorldState,
)
from ..state.schemas.result import ApplyResult, CombatRoundResult

console = Console()
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

def show_diagnostics(result: ApplyResult) -> None:
    for diagnostic in result.diagnostics:
        console.print(f"[yellow]{diagnostic}[/yellow]")


def show_player(state: WorldState) -> None:
    player = state.player
    location = state.current_location
    table = Table(title=player.name, show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Location", location.name if location else player.current_location_id)
    table.add_row("Health", f"{player.health}/{player.max_health}")
    table.add_row("Level", f"{player.level} ({player.experience} xp)")
    table.add_row("Gold", str(player.gold))
    table.add_row("Inventory", ", ".join(i.name for i in player.inventory) or "-")
    table.add_row(
        "Companions",
        ", ".join(state.npcs[c].name for c in player.companion_ids if c in state.npcs) or "-",
    )
    table.add_row("Action", str(state.action_counter))
    console.print(table)


def show_round(result: CombatRoundResult) -> None:
    body = "\n".join(result.messages) or "Nothing happens."
    if result.player_victory:
        title, style = "Victory", "green"
    elif result.player_defeated:
        title, style = "Defeat", "red"
    elif result.fled:
        title, style = "Escaped", "cyan"
    else:
        title, style = "Combat", "white"
    console.print(Panel(body, title=title, border_style=style))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_new(manager: WorldManager, args: argparse.Namespace) -> int:
    state = manager.create_world()
    console.print(f"[green]Seeded a new world in slot {manager.slot}[/green]")
    show_player(state)
    return 0


def cmd_apply(manager: WorldManager, args: argparse.Namespace) -> int:
    path = Path(args.batch)
    try:
        batch = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        return 1
    if isinstance(batch, dict):
        batch = batch.get("stateChanges", batch.get("changes", []))
    if not isinstance(batch, list):
        console.print("[red]Batch must be a list of changes[/red]")
        return 1

    result = manager.apply_action(args.action, batch, args.expect)
    show_diagnostics(result)
    console.print(f"Applied {result.applied}, skipped {result.skipped}")
    return 0


def cmd_fight(manager: WorldManager, args: argparse.Namespace) -> int:
    state = manager.start_combat(args.npc_id)
    enemy = state.npcs[args.npc_id]
    console.print(Panel(f"You face {enemy.name}.", title="Combat", border_style="red"))
    return 0


def cmd_round(manager: WorldManager, args: argparse.Namespace) -> int:
    show_round(manager.combat_round(args.combat_action, args.expect))
    return 0


def cmd_status(manager: WorldManager, args: argparse.Namespace) -> int:
    state = manager.state
    show_player(state)

    wanted = manager.wanted_status()
    if wanted.is_wanted:
        console.print(
            f"[red]Wanted:[/red] {wanted.active_bounties} bounties, "
            f"{wanted.total_bounty_amount} gold"
        )
    patterns = manager.dominant_patterns()
    if patterns:
        console.print(f"Tends toward: {', '.join(patterns)}")
    if state.combat_state:
        enemy = state.npcs.get(state.combat_state.enemy_npc_id)
        console.print(f"[red]In combat with {enemy.name if enemy else '?'}[/red]")
    return 0


def cmd_knows(manager: WorldManager, args: argparse.Namespace) -> int:
    if manager.knows(args.reference):
        console.print(f"[green]Known:[/green] {args.reference}")
    else:
        console.print(f"[yellow]Unknown:[/yellow] {args.reference}")
    return 0


def cmd_audit(manager: WorldManager, args: argparse.Namespace) -> int:
    violations = manager.audit()
    if not violations:
        console.print("[green]No invariant violations[/green]")
        return 0

    table = Table(title="Invariant violations")
    table.add_column("Rule", style="dim")
    table.add_column("Message")
    for v in violations:
        table.add_row(v.rule, v.message)
    console.print(table)
    return 1


COMMANDS = {
    "new": cmd_new,
    "apply": cmd_apply,
    "fight": cmd_fight,
    "round": cmd_round,
    "status": cmd_status,
    "knows": cmd_knows,
    "audit": cmd_audit,
}


# -----------------------------------------------------------------------------
# Main
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wayfarer", description="Wayfarer world-state engine")
    parser.add_argument("--save-dir", "-d", default="saves", help="Directory holding saves")
    parser.add_argument("--slot", default=DEFAULT_SLOT, help="Save slot name")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible rolls")
    parser.add_argument("--log-level", help="Logging level (overrides config)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("new", help="Seed a new world")

    apply = sub.add_parser("apply", help="Apply a JSON batch of changes")
    apply.add_argument("batch", help="Path to a JSON list of changes")
    apply.add_argument("--action", "-a", default="", help="What the player did")
    apply.add_argument("--expect", type=int, help="Expected action counter")

    fight = sub.add_parser("fight", help="Start combat with an NPC")
    fight.add_argument("npc_id")

    round_ = sub.add_parser("round", help="Resolve one combat round")
    round_.add_argument("combat_action", choices=["attack", "defend", "flee", "usePotion"])
    round_.add_argument("--expect", type=int, help="Expected action counter")

    sub.add_parser("status", help="Show the player and their standing")

    knows = sub.add_parser("knows", help="Check whether the player knows something")
    knows.add_argument("reference")

    sub.add_parser("audit", help="Check the save for invariant violations")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.save_dir)
    level = (args.log_level or config.get("log_level", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    seed = args.seed if args.seed is not None else config.get("random_seed")
    manager = WorldManager(
        args.save_dir,
        slot=args.slot,
        start_location_id=config.get("starting_location_id") or DEFAULT_CONFIG["starting_location_id"],
        rng=random.Random(seed) if seed is not None else None,
    )

    try:
        if args.command != "new" and manager.load_world() is None:
            console.print(f"[red]No world in slot {args.slot}. Run 'wayfarer new' first.[/red]")
            return 1
        return COMMANDS[args.command](manager, args)
    except WorldError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        console.print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
