"""Rich output formatting for runs, Catppuccin Mocha themed."""

from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from core.errors import RiptideError
from core.models import AttemptStatus, CredentialPair, RunConfig, RunReport
from core.theme import MOCHA, RIPTIDE_THEME

console = Console(theme=RIPTIDE_THEME)

STATUS_STYLES = {
    AttemptStatus.SUCCESS: "success",
    AttemptStatus.FAILURE: "failure",
    AttemptStatus.ERROR: "error",
}


def _format_elapsed(elapsed: float) -> str:
    minutes, seconds = divmod(elapsed, 60)
    if minutes > 0:
        return f"{int(minutes)}m {seconds:.1f}s"
    return f"{seconds:.1f}s"


def _field(label: str, value: str, out: Console) -> None:
    line = Text("  ")
    line.append(f"{label:<9}", style="label")
    line.append(value, style="value")
    out.print(line)


def print_run_header(config: RunConfig, total: int, out: Console = console) -> None:
    """Show what the run is about to do."""
    _field("Target:", str(config.target), out)
    _field("Proxy:", f"socks4://{config.proxy}" if config.proxy else "none (direct)", out)
    _field("Domain:", config.logon_domain, out)
    out.print(f"\n[heading]got {total} credential pairs to try.[/heading]\n")


def print_summary(report: RunReport, mask_creds: bool = False, out: Console = console) -> None:
    """Print the outcome of a run: counts by status and the valid credential, if any."""
    counts = {}
    for r in report.results:
        counts[r.status] = counts.get(r.status, 0) + 1

    out.print(f"\n[heading]Summary:[/heading]")
    for status in AttemptStatus:
        style = STATUS_STYLES[status]
        out.print(f"  [{style}]{status.value}: {counts.get(status, 0)}[/{style}]")
    out.print(f"  [value]Attempts: {len(report.results)}[/value]")
    if report.elapsed is not None:
        out.print(f"  [info]Elapsed: {_format_elapsed(report.elapsed)}[/info]")

    winner = report.winner
    if winner is None:
        out.print(f"\n  [warn]Exhausted: no valid credentials for {escape(str(report.target))}.[/warn]")
        return

    hit = Text("\n  ")
    hit.append("[+]", style="success")
    hit.append(f" rdp://{report.target} - ")
    hit.append(winner.pair.render(mask=mask_creds), style="hit.cred")
    out.print(hit)


def print_dry_run(config: RunConfig, credentials: Sequence[CredentialPair], mask_creds: bool = False,
                  out: Console = console) -> None:
    """Show the attempt plan without sending traffic."""
    out.print(f"\n[heading]DRY RUN: no traffic will be sent[/heading]\n")

    table = Table(
        title="Attempt Plan",
        header_style="table.header",
        border_style=MOCHA["surface2"],
        title_style=f"bold {MOCHA['peach']}",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Username", style="table.user")
    table.add_column("Kind", style="table.kind")
    table.add_column("Secret", style="table.secret")

    for i, pair in enumerate(credentials):
        table.add_row(
            str(i),
            Text(pair.username),
            "hash" if pair.is_hash else "password",
            Text(pair.secret.render(mask=mask_creds)),
        )

    out.print(table)
    out.print(f"\n  [heading]{len(credentials)} total attempt(s) planned against {escape(str(config.target))}.[/heading]")
    out.print(f"  [dim]Run without --dry-run to execute.[/dim]\n")


def print_fatal(error: RiptideError, out: Console = console) -> None:
    line = Text(f"Error ({error.stage}): ", style="fatal")
    line.append(error.message, style="failure")
    out.print(line)


def print_banner(out: Console = console) -> None:
    """Print the Riptide banner in Catppuccin Mocha gradient."""
    colors = [
        MOCHA["sapphire"],
        MOCHA["blue"],
        MOCHA["lavender"],
        MOCHA["mauve"],
        MOCHA["pink"],
        MOCHA["flamingo"],
    ]
    lines = [
        r"  ____  _       _   _     _       ",
        r" |  _ \(_)_ __ | |_(_) __| | ___  ",
        r" | |_) | | '_ \| __| |/ _` |/ _ \ ",
        r" |  _ <| | |_) | |_| | (_| |  __/ ",
        r" |_| \_\_| .__/ \__|_|\__,_|\___| ",
        r"         |_|                      ",
    ]
    out.print()
    for line, color in zip(lines, colors):
        out.print(Text(line, style=f"bold {color}"))
    out.print(f"  [{MOCHA['lavender']}]RDP Credential Auditor[/{MOCHA['lavender']}]")
    out.print(f"  [{MOCHA['overlay1']}]For authorized security testing only[/{MOCHA['overlay1']}]\n")
