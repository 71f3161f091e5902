import json

import click
from flask import Flask

from .extensions import db
from .migration import MigrationPaths, migrate_on_startup
from .schemas import MigrationResultSchema
from .store import Store


def register_cli(app: Flask) -> None:

    @app.cli.command("legacy-migrate")
    @click.option("--force", is_flag=True, help="Migrate even if the Store already holds patients.")
    def legacy_migrate(force):
        """Back up and migrate the legacy folder store."""
        def show(progress):
            click.echo(f"[{progress.percentage:3d}%] {progress.step}")

        outcome = migrate_on_startup(Store(db.session), MigrationPaths.from_config(app.config),
                                     on_progress=show, force=force)
        if outcome.result is None:
            click.echo("No legacy data migration needed.")
            return
        if outcome.backup_path:
            click.echo(f"Backup: {outcome.backup_path}")
        click.echo(json.dumps(MigrationResultSchema().dump(outcome.result), indent=2))
        if not outcome.result.success:
            raise click.exceptions.Exit(1)
