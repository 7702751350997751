#!/usr/bin/env python3
"""
Curation CLI

Command-line helpers for operators of a curation coordinator.

Usage:
    curation config [--path FILE] [--json]
    curation quote --deposit N --pct P [--winning-total W --voter-stake S] [--json]
"""

import json
from typing import Optional

import click

from . import __version__
from .config import load_config, parse_pct
from .constants import PCT_BASE
from .exceptions import CurationError
from .logger import configure_logging
from .resolution import dispensation_amount
from .rewards import reward_share


def format_pct(pct: int) -> str:
    """Render a fixed-point fraction of PCT_BASE as a percentage."""
    whole, rest = divmod(pct * 100, PCT_BASE)
    if rest == 0:
        return f"{whole}%"
    return f"{pct * 100 / PCT_BASE:.6f}".rstrip("0").rstrip(".") + "%"


@click.group()
@click.version_option(version=__version__, prog_name="curation")
def cli():
    """Token-curated registry coordinator tools."""
    pass


@cli.command("config")
@click.option(
    "--path", "-p",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: $CURATION_CONFIG or ./curation.toml)"
)
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def config_cmd(path: Optional[str], as_json: bool):
    """Show the resolved coordinator configuration.

    Examples:

        curation config

        curation config --path deploy/curation.toml --json
    """
    try:
        cfg = load_config(path)
        cfg.validate()
    except CurationError as e:
        raise click.ClickException(str(e))

    configure_logging(log_level=cfg.logging.level, file_output=cfg.logging.file_output)

    if as_json:
        data = cfg.to_dict()
        data["curation"]["dispensation_pct"] = str(cfg.curation.dispensation_pct)
        click.echo(json.dumps(data, indent=2))
        return

    section = cfg.curation
    click.echo()
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo(click.style("        Curation Configuration         ", fg="cyan", bold=True))
    click.echo(click.style("═══════════════════════════════════════", fg="cyan"))
    click.echo()
    click.echo(f"Source:            {cfg.source or 'defaults'}")
    click.echo(f"Address:           {section.address}")
    click.echo(f"Min deposit:       {section.min_deposit}")
    click.echo(f"Apply stage:       {section.apply_stage_len}s")
    click.echo(
        f"Dispensation:      {format_pct(section.dispensation_pct)} "
        f"({section.dispensation_pct})"
    )
    click.echo(f"Log level:         {cfg.logging.level}")
    click.echo(f"Log file output:   {cfg.logging.file_output}")


@cli.command("quote")
@click.option("--deposit", "-d", type=int, required=True, help="Losing deposit amount")
@click.option(
    "--pct", "-p",
    required=True,
    help="Dispensation percentage (\"60%\" or a fraction of 10^18)"
)
@click.option("--winning-total", "-w", type=int, default=None, help="Winning side total stake")
@click.option("--voter-stake", "-s", type=int, default=None, help="Voter's winning stake")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
def quote_cmd(
    deposit: int,
    pct: str,
    winning_total: Optional[int],
    voter_stake: Optional[int],
    as_json: bool,
):
    """Quote how a losing deposit is split after a challenge.

    Examples:

        curation quote --deposit 100 --pct 60%

        curation quote --deposit 100 --pct 60% --winning-total 70 --voter-stake 10
    """
    if (winning_total is None) != (voter_stake is None):
        raise click.UsageError("--winning-total and --voter-stake go together")

    try:
        pct_value = parse_pct(pct)
        amount = dispensation_amount(deposit, pct_value)
        pool = deposit - amount
        reward = None
        if winning_total is not None:
            reward = reward_share(pool, voter_stake, winning_total)
    except (CurationError, ValueError) as e:
        raise click.ClickException(str(e))

    if as_json:
        result = {"deposit": deposit, "dispensationPct": str(pct_value), "amount": amount, "pool": pool}
        if reward is not None:
            result.update({"winningTotalStake": winning_total, "voterStake": voter_stake, "reward": reward})
        click.echo(json.dumps(result, indent=2))
        return

    click.echo()
    click.echo(click.style("Dispensation Quote", fg="cyan", bold=True))
    click.echo(f"Losing deposit:    {deposit}")
    click.echo(f"Dispensation:      {format_pct(pct_value)}")
    click.echo(click.style(f"Winner receives:   {amount}", fg="green"))
    click.echo(f"Voter pool:        {pool}")
    if reward is not None:
        click.echo()
        click.echo(f"Voter stake:       {voter_stake} / {winning_total}")
        click.echo(click.style(f"Voter reward:      {reward}", fg="green"))


def main():
    cli()


if __name__ == "__main__":
    main()
