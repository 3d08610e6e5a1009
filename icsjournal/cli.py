# -*- coding: utf-8 -*-
"""Command-line interface for icsjournal.

Usage:
    icsjournal summary
    icsjournal list --year 2024 --month 3 --search travel
    icsjournal add --subject "Day off" --categories "home, rest" < body.txt
    icsjournal export all.ics
    icsjournal passwd
    icsjournal encrypt
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

import click

from . import logic
from .config import data_directory, load_config, setup_logging
from .errors import JournalError
from .models import Entry
from .repository import Repository
from .security import DEFAULT_PASSPHRASE, KeyStore


@contextmanager
def _reported() -> Iterator[None]:
    """Turn storage and key store failures into click errors."""
    try:
        yield
    except (JournalError, OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _prompt_passphrase() -> Optional[str]:
    return click.prompt("Passphrase", hide_input=True, default="", show_default=False)


def _open(ctx: click.Context) -> Tuple[KeyStore, Repository]:
    obj = ctx.obj
    data_dir: Path = obj["data_dir"]
    with _reported():
        data_dir.mkdir(parents=True, exist_ok=True)
        keystore = logic.open_keystore(data_dir, _prompt_passphrase)
        if keystore.is_default_passphrase():
            click.echo(
                "You are using the default passphrase. Run 'icsjournal passwd' "
                "to protect your journal.",
                err=True,
            )
        repo = Repository.open(
            data_dir,
            keystore=keystore,
            strict_parsing=obj["strict"],
            encrypt_new_files=obj["encrypt_new_files"],
        )
    if repo.parse_error_count:
        click.echo(f"{repo.parse_error_count} parse error(s) while loading; see the log.", err=True)
    return keystore, repo


def _format_entry(entry: Entry) -> str:
    when = entry.start.strftime("%Y-%m-%d %H:%M") if entry.start else "----------"
    line = f"{when}  {entry.summary or '(no subject)'}"
    if entry.categories:
        line += f"  [{entry.categories}]"
    return line


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Directory holding the journal files")
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Path to config.json")
@click.option("--strict", is_flag=True, help="Skip records with any parse problem")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx, data_dir, config_file, strict, verbose):
    """Encrypted iCalendar journal."""
    cfg = load_config(config_file)
    setup_logging("DEBUG" if verbose else str(cfg["log_level"]), cfg.get("log_file"))
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir or data_directory(cfg)
    ctx.obj["strict"] = strict or bool(cfg["strict_parsing"])
    ctx.obj["encrypt_new_files"] = bool(cfg["encrypt_new_files"])


@cli.command()
@click.pass_context
def summary(ctx):
    """Show entry counts per year and month."""
    _, repo = _open(ctx)
    click.echo(f"Data directory: {repo.directory}")
    click.echo(f"Entries: {repo.entry_count} in {len(repo.files)} files")
    for year in repo.get_years():
        months = ", ".join(
            f"{m:02d} ({len(repo.get_entries_by_month(year, m))})"
            for m in repo.get_months_for_year(year)
        )
        click.echo(f"  {year}: {len(repo.get_entries_by_year(year))} entries; months {months}")
    categories = repo.get_categories()
    if categories:
        click.echo(f"Categories: {', '.join(categories)}")


@cli.command("list")
@click.option("--year", type=int, default=None)
@click.option("--month", type=click.IntRange(1, 12), default=None)
@click.option("--search", default=None, help="Text to look for in subject, categories, body")
@click.pass_context
def list_cmd(ctx, year, month, search):
    """List entries, newest first."""
    if month is not None and year is None:
        raise click.UsageError("--month requires --year")
    _, repo = _open(ctx)
    for entry in logic.list_entries(repo, year, month, search):
        click.echo(_format_entry(entry))


@cli.command()
@click.option("--subject", required=True)
@click.option("--categories", default="")
@click.option("--date", "start", type=click.DateTime(["%Y-%m-%d", "%Y-%m-%d %H:%M"]), default=None)
@click.option("--description", default=None, help="Entry text; read from stdin when omitted")
@click.pass_context
def add(ctx, subject, categories, start, description):
    """Add a new entry."""
    _, repo = _open(ctx)
    if description is None:
        description = click.get_text_stream("stdin").read()
    with _reported():
        entry = logic.add_entry(repo, subject, description, categories, start)
    click.echo(f"Saved {entry.uid}")


@cli.command()
@click.argument("outfile", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--year", type=int, default=None)
@click.option("--month", type=click.IntRange(1, 12), default=None)
@click.option("--search", default=None)
@click.pass_context
def export(ctx, outfile, year, month, search):
    """Export entries to a plain .ics file."""
    if month is not None and year is None:
        raise click.UsageError("--month requires --year")
    _, repo = _open(ctx)
    entries = logic.list_entries(repo, year, month, search)
    if outfile.exists() and not click.confirm(f"Overwrite {outfile}?"):
        raise click.Abort()
    with _reported():
        path = logic.export_entries(entries, outfile)
    click.echo(f"Exported {len(entries)} entries to {path}")


@cli.command()
@click.pass_context
def passwd(ctx):
    """Change the journal passphrase."""
    keystore, _ = _open(ctx)
    if keystore.is_default_passphrase():
        current = DEFAULT_PASSPHRASE
    else:
        current = click.prompt("Current passphrase", hide_input=True)
    new = click.prompt("New passphrase", hide_input=True, confirmation_prompt=True)
    with _reported():
        logic.change_passphrase(keystore, current, new)
    click.echo("Passphrase changed.")


@cli.command()
@click.pass_context
def encrypt(ctx):
    """Encrypt plaintext entry files in place."""
    _, repo = _open(ctx)
    with _reported():
        count = logic.encrypt_existing_files(repo)
    click.echo(f"Encrypted {count} file(s).")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
