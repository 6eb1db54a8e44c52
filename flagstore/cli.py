"""
CLI interface for managing stored feature values.

Scopes given on the command line are plain strings (e.g. a tenant slug or
"myapp.models.User|42"). Omitting --scope targets the global scope.
"""
import json
import logging
from functools import wraps

import click

from flagstore.config import settings
from flagstore.errors import FlagStoreError
from flagstore.features.drivers.database import DatabaseDriver
from flagstore.features.interaction import ScopedFeatureInteraction
from flagstore.features.manager import FeatureManager, get_feature_manager

logger = logging.getLogger(__name__)


class FlagStoreCLI:
    """CLI application state: the manager and the selected store."""

    def __init__(self, manager: FeatureManager, store: str = None):
        self.manager = manager
        self.store = store

    def interaction(self, scopes) -> ScopedFeatureInteraction:
        interaction = self.manager.without_default_scope(self.store)
        if scopes:
            interaction.for_scope(list(scopes))
        return interaction


def _handle_errors(command):
    """Turn library errors into clean CLI failures."""

    @wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except FlagStoreError as e:
            logger.debug(f"Command failed: {e.error_code.value}")
            raise click.ClickException(e.message) from e

    return wrapper


def _parse_value(raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@click.group()
@click.option("--store", default=None, help="Feature store to use (defaults to the configured default store)")
@click.pass_context
def cli(ctx, store):
    """flagstore - Feature flag storage management"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if ctx.obj is None:
        ctx.obj = FlagStoreCLI(get_feature_manager(), store)
    elif store is not None:
        ctx.obj.store = store


@cli.command()
@click.pass_obj
@_handle_errors
def migrate(app: FlagStoreCLI):
    """Create the features table for a database store."""
    driver = app.manager.store(app.store).driver
    if not isinstance(driver, DatabaseDriver):
        click.echo("Store does not use the database driver, nothing to migrate.")
        return
    driver.create_table()
    click.echo(f"✓ Table '{driver.table.name}' is ready")


@cli.command()
@click.argument("features", nargs=-1, required=True)
@click.option("--scope", "scopes", multiple=True, help="Scope to activate for (repeatable)")
@click.option("--value", "raw_value", default="true", help="JSON value to store (default: true)")
@click.option("--everyone", is_flag=True, help="Overwrite the value for every stored scope")
@click.pass_obj
@_handle_errors
def activate(app: FlagStoreCLI, features, scopes, raw_value, everyone):
    """Activate features."""
    value = _parse_value(raw_value)
    interaction = app.interaction(scopes)
    if everyone:
        interaction.activate_for_everyone(list(features), value)
    else:
        interaction.activate(list(features), value)
    click.echo(f"✓ Activated {', '.join(features)}")


@cli.command()
@click.argument("features", nargs=-1, required=True)
@click.option("--scope", "scopes", multiple=True, help="Scope to deactivate for (repeatable)")
@click.option("--everyone", is_flag=True, help="Deactivate for every stored scope")
@click.pass_obj
@_handle_errors
def deactivate(app: FlagStoreCLI, features, scopes, everyone):
    """Deactivate features."""
    interaction = app.interaction(scopes)
    if everyone:
        interaction.deactivate_for_everyone(list(features))
    else:
        interaction.deactivate(list(features))
    click.echo(f"✓ Deactivated {', '.join(features)}")


@cli.command()
@click.argument("features", nargs=-1, required=True)
@click.option("--scope", "scopes", multiple=True, help="Scope to forget (repeatable)")
@click.pass_obj
@_handle_errors
def forget(app: FlagStoreCLI, features, scopes):
    """Forget stored values so they are resolved again."""
    app.interaction(scopes).forget(list(features))
    click.echo(f"✓ Forgot {', '.join(features)}")


@cli.command()
@click.argument("features", nargs=-1)
@click.pass_obj
@_handle_errors
def purge(app: FlagStoreCLI, features):
    """Purge every stored value of FEATURES (all features when none given)."""
    app.interaction(()).purge(list(features) or None)
    click.echo(f"✓ Purged {', '.join(features) if features else 'all features'}")


@cli.command()
@click.argument("feature")
@click.option("--scope", default=None, help="Scope to read the value for")
@click.pass_obj
@_handle_errors
def value(app: FlagStoreCLI, feature, scope):
    """Print the value of a feature as JSON."""
    scopes = () if scope is None else (scope,)
    click.echo(json.dumps(app.interaction(scopes).value(feature)))


@cli.command()
@click.pass_obj
@_handle_errors
def stored(app: FlagStoreCLI):
    """List features with stored values."""
    names = app.manager.stored(app.store)
    if not names:
        click.echo("No stored features.")
        return
    for name in names:
        click.echo(name)


if __name__ == '__main__':
    cli()
