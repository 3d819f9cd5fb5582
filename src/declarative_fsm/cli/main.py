"""FSM CLI tool for inspecting and running machine configurations.

This module provides a command-line interface for:
- Validating configuration files
- Displaying states and transitions
- Sending a sequence of messages through a machine
"""

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from .. import __version__
from ..config.compiler import INITIAL_STATE, MachineConfiguration
from ..config.loader import ConfigLoader
from ..exceptions import FSMError
from ..functions.invoker import FunctionRegistry
from ..machine import create_state_machine

console = Console()


def _edge_label(edge) -> str:
    if isinstance(edge, str):
        return edge
    return " | ".join(
        f"{transition.to} if {getattr(transition.predicate, '__name__', transition.predicate)}"
        for transition in edge
    )


def _compile(config_file: str) -> MachineConfiguration:
    configuration = MachineConfiguration(ConfigLoader().load_from_file(config_file))
    configuration.configure()
    return configuration


@click.group()
@click.version_option(version=__version__)
def cli():
    """FSM CLI - Declarative Finite State Machine Tool"""
    pass


@cli.group()
def config():
    """Machine configuration commands"""
    pass


@config.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--verbose', '-v', is_flag=True, help='Show detailed validation output')
def validate(config_file: str, verbose: bool):
    """Validate a machine configuration file"""
    try:
        configuration = _compile(config_file)
    except (FSMError, ValueError, OSError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    console.print("[green]Configuration is valid![/green]")

    if verbose:
        states = configuration.get_states()
        transitions = configuration.get_transitions()
        terminal = [name for name in states if not transitions.get(name)]
        console.print("\n[bold]Configuration Details:[/bold]")
        console.print(f"  States: {len(states)}")
        console.print(f"  Messages: {len(configuration.get_messages())}")
        console.print(f"  Terminal states: {', '.join(terminal) or '-'}")


@config.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['tree', 'table']), default='tree')
def show(config_file: str, format: str):
    """Display machine states and transitions"""
    try:
        configuration = _compile(config_file)
    except (FSMError, ValueError, OSError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    states = configuration.get_states()
    transitions = configuration.get_transitions()
    title = Path(config_file).stem

    if format == 'tree':
        tree = Tree(f"[bold]{title}[/bold]")
        for name, state in states.items():
            label = name
            if name == INITIAL_STATE:
                label += " [green](init)[/green]"
            if not transitions.get(name):
                label += " [red](terminal)[/red]"
            if state.has_action:
                label += " [yellow](action)[/yellow]"
            branch = tree.add(label)
            for message, edge in transitions.get(name, {}).items():
                branch.add(f"{message} → {_edge_label(edge)}")
        console.print(tree)

    else:
        table = Table(title=f"{title} - Transitions")
        table.add_column("From", style="cyan")
        table.add_column("Message", style="yellow")
        table.add_column("To", style="cyan")

        for name in states:
            edges = transitions.get(name, {})
            if not edges:
                table.add_row(name, "-", "-")
            for message, edge in edges.items():
                table.add_row(name, message, _edge_label(edge))

        console.print(table)


@cli.group()
def run():
    """Execute machine operations"""
    pass


@run.command()
@click.argument('config_file', type=click.Path(exists=True))
@click.argument('messages', nargs=-1, required=True)
@click.option('--params', '-p', help='Parameters sent with every message (JSON string)')
@click.option('--functions', '-m', multiple=True,
              help='Module whose public functions can be referenced by name')
@click.option('--output', '-o', help='Output file for the final state')
def send(config_file: str, messages: tuple[str, ...], params: str | None,
         functions: tuple[str, ...], output: str | None):
    """Send a sequence of messages and print the final state"""
    parameters = None
    if params:
        try:
            parameters = json.loads(params)
        except json.JSONDecodeError:
            console.print("[red]Invalid JSON parameters[/red]")
            sys.exit(1)

    registry = FunctionRegistry()
    try:
        for module_name in functions:
            registry.register_module(module_name)
        machine = create_state_machine(ConfigLoader().load_from_file(config_file),
                                       registry=registry)
        machine.initialize()
    except (FSMError, ImportError, ValueError, OSError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    path = [machine.get_current_state()]
    for message in messages:
        try:
            path.append(machine.send(message, parameters))
        except FSMError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    result = {
        'state': machine.get_current_state(),
        'params': machine.get_current_params(),
        'available': machine.available(),
        'path': path,
    }

    console.print(f"[green]Final state: {result['state']}[/green]")
    console.print(Syntax(json.dumps(result, indent=2, default=str), "json", theme="monokai"))

    if output:
        with open(output, 'w') as f:
            json.dump(result, f, indent=2, default=str)
        console.print(f"\n[green]Results saved to {output}[/green]")


def main():
    """Main entry point for CLI"""
    cli()


if __name__ == '__main__':
    main()
