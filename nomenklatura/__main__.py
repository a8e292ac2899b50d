"""
Run turns against a scenario from the command line.

Usage:
    python -m nomenklatura --turns 8 --seed 1917
    python -m nomenklatura path/to/scenario.yaml --balance balance.yaml --save saves
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import ConfigError, load_balance
from .state.event_bus import EventBus
from .state.store import ScenarioError, load_scenario, save_game
from .systems.turns import TurnOrchestrator
from .tools.dice import Dice

logger = logging.getLogger(__name__)

DEFAULT_SCENARIO = Path(__file__).parent / "data" / "default_scenario.yaml"

THEME = {
    "primary": "red",
    "secondary": "white",
    "dim": "grey50",
    "warning": "yellow",
}

console = Console()


def render_report(report) -> Table:
    """One turn as a two-column table."""
    table = Table(
        title=f"[bold {THEME['primary']}]Turn {report.turn_number}[/bold {THEME['primary']}]",
        show_header=False,
        box=None,
    )
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])

    stats = report.state_snapshot.get("stats", {})
    macro = report.macro
    table.add_row("Treasury", f"{stats.get('treasury')} ({report.treasury_delta:+d})")
    table.add_row("Stability", f"{stats.get('stability')}")
    table.add_row("GDP", f"{macro.gdp_index} ({macro.gdp_growth_delta:+d})")
    table.add_row("Inflation", f"{macro.inflation_rate}%")
    table.add_row("Sectors", f"{macro.agriculture_share}/{macro.industry_share}/{macro.services_share}")
    if macro.crisis:
        table.add_row("Crisis", f"[{THEME['warning']}]{macro.crisis.value}[/{THEME['warning']}]")

    for event in report.diplomacy.world_events:
        table.add_row("World", event.headline)
    for event in report.political_events:
        if event.summary:
            table.add_row("Politics", event.summary)

    if report.incidents:
        for incident in report.incidents:
            table.add_row("Incident", f"[bold]{incident.title}[/bold] ({incident.priority})")
    else:
        table.add_row("Incident", f"[{THEME['dim']}]quiet ({report.quiet_reason})[/{THEME['dim']}]")
    for incident in report.suppressed:
        table.add_row("Held back", f"[{THEME['warning']}]{incident.title}[/{THEME['warning']}]")
    return table


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Nomenklatura - turn engine")
    parser.add_argument(
        "scenario",
        nargs="?",
        default=str(DEFAULT_SCENARIO),
        help="Scenario YAML file (default: bundled scenario)",
    )
    parser.add_argument("--turns", "-n", type=int, default=4, help="Turns to advance")
    parser.add_argument("--seed", "-s", type=int, default=None, help="Seed for reproducible runs")
    parser.add_argument("--balance", "-b", default=None, help="Balance override YAML")
    parser.add_argument("--save", default=None, help="Directory to save the final state to")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    try:
        balance = load_balance(args.balance)
        state = load_scenario(args.scenario)
    except (ConfigError, ScenarioError) as e:
        console.print(f"[{THEME['primary']}]{e}[/{THEME['primary']}]")
        return 1

    orchestrator = TurnOrchestrator(balance=balance, bus=EventBus(), dice=Dice(args.seed))
    console.print(Panel(f"{state.name} - seed {args.seed}", style=THEME["primary"]))

    for _ in range(args.turns):
        report = orchestrator.advance_turn(state)
        console.print(render_report(report))

    if args.save:
        save_file = save_game(state, args.save)
        console.print(f"[{THEME['dim']}]Saved {state.id} to {save_file}[/{THEME['dim']}]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
