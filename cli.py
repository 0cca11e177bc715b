#!/usr/bin/env python3
"""
CLI for Studio Budget.

Usage:
    python cli.py rollup estimate.json --policy bottom_up
    python cli.py check estimate.json
    python cli.py locate estimate.json sec-1
    python cli.py resolve estimate.json --level section --group grp-1 --section sec-1

Commands:
    rollup    Aggregate an estimate and print the budget table
    check     Validate rollup invariants of an estimate as supplied
    locate    Find the level and ancestry of a node id
    resolve   Build the allocation target for a selection
"""
import json
import sys
import logging

import click

from studio_budget import __version__
from studio_budget.config import DEFAULT_CONFIG_PATH, ROLLUP_POLICIES, SELECTOR_LEVELS, get_config
from studio_budget.domain.entities.estimate import Estimate
from studio_budget.domain.exceptions import DomainError
from studio_budget.domain.services.allocation_resolver import AllocationResolver, Selection
from studio_budget.domain.services.hierarchy_builder import build_estimate
from studio_budget.domain.services.rollup_service import RollupAggregator
from studio_budget.modules.budget_view import compute_summary, flatten_estimate, format_for_display

# Configure logging
_config = get_config()
logging.basicConfig(
    level=getattr(logging, _config.log_level, logging.INFO),
    format=_config.log_format
)
logger = logging.getLogger(__name__)

INDENT = {'group': '', 'section': '  ', 'subsection': '    '}


def _load_estimate(path: str) -> Estimate:
    """Read a JSON estimate payload and build the hierarchy."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {path}: {e}")

    try:
        return build_estimate(data)
    except DomainError as e:
        raise click.ClickException(e.message)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Studio Budget CLI.

    Build estimate hierarchies, roll up spent and balance, and resolve
    allocation targets for purchase orders, expenses and wages.
    """
    pass


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option(
    '--policy',
    type=click.Choice(ROLLUP_POLICIES),
    default=None,
    help='Parent amount policy (defaults to budget_config.yaml)'
)
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def rollup(path: str, policy: str, output_json: bool):
    """Aggregate an estimate and print the budget table.

    Example:
        python cli.py rollup data/estimate.json --policy source_amounts
    """
    estimate = _load_estimate(path)
    aggregated = RollupAggregator(policy=policy).aggregate(estimate)

    if output_json:
        click.echo(json.dumps(aggregated.to_dict(), indent=2))
        return

    summary = compute_summary(aggregated)
    click.echo(click.style(f"Estimate {summary['estimate_id']} {summary['name']}", fg='cyan', bold=True))
    click.echo(f"{'=' * 78}")
    for row in format_for_display(flatten_estimate(aggregated)):
        label = f"{INDENT[row['level']]}{row['code'] or row['node_id']} {row['name']}"
        line = f"{label[:30]:<30} {row['amount']:>16} {row['spent']:>16} {row['balance']:>16}"
        color = {'over-budget': 'red', 'warning': 'yellow'}.get(row['status'])
        click.echo(click.style(line, fg=color) if color else line)
    click.echo(f"{'=' * 78}")
    click.echo(f"Total:      {summary['total']:>16}")
    click.echo(f"Spent:      {summary['spent']:>16}")
    click.echo(f"Balance:    {summary['balance']:>16}")
    click.echo(f"Efficiency: {summary['efficiency']:>15.1f}%")


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option(
    '--policy',
    type=click.Choice(ROLLUP_POLICIES),
    default=None,
    help='Parent amount policy (defaults to budget_config.yaml)'
)
def check(path: str, policy: str):
    """Validate rollup invariants of an estimate as supplied.

    Exits with status 1 if any invariant is violated.
    """
    estimate = _load_estimate(path)
    is_valid, errors = RollupAggregator(policy=policy).validate(estimate)

    if is_valid:
        click.echo(click.style(f"Estimate {estimate.estimate_id} is consistent", fg='green'))
        return

    click.echo(click.style(f"{len(errors)} invariant violation(s):", fg='red', bold=True))
    for error in errors:
        click.echo(f"  - {error}")
    sys.exit(1)


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.argument('target_id')
def locate(path: str, target_id: str):
    """Find the level and ancestry of a node id.

    Exits with status 1 if the node is not found.
    """
    estimate = _load_estimate(path)
    result = AllocationResolver(estimate).locate(target_id)

    if not result.found:
        click.echo(click.style(f"{target_id}: {result.status.value}", fg='yellow'))
        sys.exit(1)

    click.echo(f"Level:      {result.level.value}")
    click.echo(f"Group:      {result.group_id}")
    if result.section_id:
        click.echo(f"Section:    {result.section_id}")
    if result.subsection_id:
        click.echo(f"Subsection: {result.subsection_id}")


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--level', type=click.Choice(SELECTOR_LEVELS), required=True, help='Allocation level')
@click.option('--group', 'group_id', default='', help='Selected group id')
@click.option('--section', 'section_id', default='', help='Selected section id')
@click.option('--subsection', 'subsection_id', default='', help='Selected subsection id')
def resolve(path: str, level: str, group_id: str, section_id: str, subsection_id: str):
    """Build the allocation target for a selection.

    Example:
        python cli.py resolve data/estimate.json --level subsection --subsection sub-3
    """
    estimate = _load_estimate(path)
    resolver = AllocationResolver(estimate)

    try:
        target = resolver.build_target(level, Selection(group_id, section_id, subsection_id))
    except DomainError as e:
        click.echo(click.style(e.message, fg='red'))
        sys.exit(1)

    is_valid, errors = resolver.validate_target(target)
    for error in errors:
        click.echo(click.style(f"Warning: {error}", fg='yellow'), err=True)
    click.echo(json.dumps(target.to_dict(), indent=2))
    if not is_valid:
        sys.exit(1)


@cli.command()
def version():
    """Display version information."""
    click.echo(click.style('Studio Budget', fg='cyan', bold=True))
    click.echo(f"Version: {__version__}")
    click.echo(f"Config:  {_config.version} ({DEFAULT_CONFIG_PATH})")
    click.echo(f"Policy:  {_config.rollup_policy}")


if __name__ == '__main__':
    cli()
