#!/usr/bin/env python3
"""
Apply the TutorLink SQL migrations to the Supabase Postgres database.

The coin ledger relies on the functions created here (credit_coins,
settle_payment_event, purchase_contact_unlock, ...), so run this before
starting the API with the supabase ledger backend.

Usage:
    python run_migrations.py                 # Apply pending migrations
    python run_migrations.py --status        # Show applied and pending
    python run_migrations.py --dry-run       # List what would be applied
    python run_migrations.py --force 002     # Re-apply one migration

Configuration:
    TUTORLINK_SUPABASE_DB_URL=postgresql://postgres.[ref]:[password]@[host]:6543/postgres
"""

import argparse
import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path

import psycopg2
from psycopg2 import sql
from rich.console import Console
from rich.table import Table

from shared.config import get_settings

console = Console()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATIONS_TABLE = "schema_migrations"


@dataclass(frozen=True)
class Migration:
    """One SQL file in the migrations directory."""

    name: str
    path: Path
    checksum: str

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


def checksum_of(content: str) -> str:
    """Short content hash used to detect edited migrations."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """List migration files in name order."""
    if not directory.exists():
        console.print(f"[yellow]Warning:[/yellow] migrations directory not found: {directory}")
        return []
    return [
        Migration(name=path.name, path=path, checksum=checksum_of(path.read_text(encoding="utf-8")))
        for path in sorted(directory.glob("*.sql"))
    ]


def split_pending(
    migrations: list[Migration],
    applied: dict[str, dict],
) -> tuple[list[Migration], list[Migration]]:
    """
    Split migrations into (pending, changed).

    A changed migration was applied under a different checksum. It is
    reported, never re-applied automatically.
    """
    pending = [m for m in migrations if m.name not in applied]
    changed = [
        m for m in migrations
        if m.name in applied and applied[m.name]["checksum"] != m.checksum
    ]
    return pending, changed


def connect(db_url: str):
    """Open a connection or exit with a readable message."""
    if not db_url:
        console.print("[red]Error:[/red] TUTORLINK_SUPABASE_DB_URL is not set.")
        console.print("Use the URI from Supabase Dashboard > Settings > Database > Connection string.")
        sys.exit(1)
    try:
        return psycopg2.connect(db_url)
    except psycopg2.Error as e:
        console.print(f"[red]Database connection failed:[/red] {e}")
        sys.exit(1)


def ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {} (
                    name TEXT PRIMARY KEY,
                    checksum TEXT NOT NULL,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            ).format(sql.Identifier(MIGRATIONS_TABLE))
        )
    conn.commit()


def fetch_applied(conn) -> dict[str, dict]:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL("SELECT name, checksum, applied_at FROM {} ORDER BY name").format(
                sql.Identifier(MIGRATIONS_TABLE)
            )
        )
        return {name: {"checksum": checksum, "applied_at": applied_at} for name, checksum, applied_at in cur.fetchall()}


def apply(conn, migration: Migration) -> None:
    """Run one migration and record it, in a single transaction."""
    console.print(f"[blue]Applying[/blue] {migration.name}")
    try:
        with conn.cursor() as cur:
            cur.execute(migration.read())
            cur.execute(
                sql.SQL(
                    "INSERT INTO {} (name, checksum) VALUES (%s, %s) "
                    "ON CONFLICT (name) DO UPDATE SET checksum = EXCLUDED.checksum, applied_at = NOW()"
                ).format(sql.Identifier(MIGRATIONS_TABLE)),
                (migration.name, migration.checksum),
            )
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        console.print(f"[red]Failed[/red] {migration.name}: {e}")
        raise
    console.print(f"[green]Applied[/green] {migration.name}")


def print_status(migrations: list[Migration], applied: dict[str, dict]) -> None:
    if not migrations and not applied:
        console.print("[dim]No migrations found.[/dim]")
        return

    pending, changed = split_pending(migrations, applied)
    pending_names = {m.name for m in pending}
    changed_names = {m.name for m in changed}

    table = Table(title="TutorLink migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")
    table.add_column("Applied at")
    table.add_column("Checksum")

    for migration in migrations:
        info = applied.get(migration.name)
        if migration.name in pending_names:
            status = "[yellow]pending[/yellow]"
        elif migration.name in changed_names:
            status = "[red]changed since applied[/red]"
        else:
            status = "[green]applied[/green]"
        applied_at = info["applied_at"].strftime("%Y-%m-%d %H:%M:%S") if info and info["applied_at"] else ""
        table.add_row(migration.name, status, applied_at, migration.checksum)

    console.print(table)


def find_by_prefix(migrations: list[Migration], prefix: str) -> Migration:
    matches = [m for m in migrations if m.name.startswith(prefix)]
    if len(matches) != 1:
        found = ", ".join(m.name for m in matches) or "none"
        console.print(f"[red]Error:[/red] expected one migration matching '{prefix}', found {found}")
        sys.exit(1)
    return matches[0]


def main():
    parser = argparse.ArgumentParser(description="Apply TutorLink database migrations")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--status", action="store_true", help="Show migration status")
    mode.add_argument("--dry-run", action="store_true", help="List pending migrations only")
    mode.add_argument("--force", metavar="PREFIX", help="Re-apply the migration with this prefix")
    args = parser.parse_args()

    console.print("[bold]TutorLink database migrations[/bold]")

    migrations = discover_migrations()
    conn = connect(get_settings().supabase_db_url)
    try:
        ensure_migrations_table(conn)
        applied = fetch_applied(conn)

        if args.status:
            print_status(migrations, applied)
            return

        if args.force:
            migration = find_by_prefix(migrations, args.force)
            if input(f"Re-apply {migration.name}? [y/N] ").lower() != "y":
                console.print("Aborted.")
                return
            apply(conn, migration)
            return

        pending, changed = split_pending(migrations, applied)
        for migration in changed:
            console.print(f"[yellow]Warning:[/yellow] {migration.name} changed after it was applied")

        if not pending:
            console.print("[green]Database is up to date.[/green]")
            return

        for migration in pending:
            if args.dry_run:
                console.print(f"[cyan]Would apply[/cyan] {migration.name}")
            else:
                apply(conn, migration)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
