"""CLI entry point for the marketplace catalog."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import click

from .control_plane.results import OperationResult
from .control_plane.session import Session
from .core.config import load_settings
from .core.enums import ErrorKind, Role, StorageBackend
from .core.models import Product, User
from .main import CatalogApp, build_catalog
from .observability.logger import bind_actor, bind_command, setup_logging, unbind_actor

logger = logging.getLogger(__name__)


@click.group()
@click.option("--config", "config_path", default=None, help="Config file path")
@click.option(
    "--backend",
    type=click.Choice([b.value for b in StorageBackend]),
    default=None,
    help="Storage backend override",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, backend: str | None) -> None:
    """Marketplace product catalog."""
    bind_command(ctx.invoked_subcommand or ctx.info_name)
    if ctx.obj is not None:
        # Prebuilt app supplied by the caller (embedding, tests)
        return

    overrides: dict = {}
    if backend:
        overrides["storage"] = {"backend": backend}
    settings = load_settings(config_path=config_path, overrides=overrides)

    setup_logging(settings.observability.log_level, settings.observability.log_format)

    app = build_catalog(settings)
    ctx.call_on_close(app.close)
    if settings.observability.metrics_port:
        app.metrics.start_server(settings.observability.metrics_port, settings.storage.backend.value)
    ctx.obj = app


def _credentials(func):
    func = click.option("--password", required=True, help="Password")(func)
    return click.option("--username", required=True, help="Username")(func)


def _check(result: OperationResult) -> object:
    if not result.ok:
        raise click.ClickException(f"{result.error.value}: {result.message}")
    return result.value


@contextmanager
def _login(app: CatalogApp, username: str | None, password: str | None) -> Iterator[Session]:
    """Session for one command; anonymous when no username is given."""
    session = Session()
    if username is None:
        yield session
        return

    _check(app.auth.login(session, username, password or ""))
    bind_actor(session.actor_id, username)
    try:
        yield session
    finally:
        result = app.auth.logout(session)
        unbind_actor()
        if not result.ok:
            logger.warning("Logout after command failed: %s", result.message)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@main.command()
@click.option("--username", required=True, help="Username")
@click.option("--password", required=True, help="Password")
@click.option("--admin", is_flag=True, help="Register with the ADMIN role")
@click.pass_obj
def register(app: CatalogApp, username: str, password: str, admin: bool) -> None:
    """Register a new user."""
    role = Role.ADMIN if admin else Role.USER
    user = _check(app.auth.register(User(username=username, password=password, role=role)))
    click.echo(f"Registered user id={user.id} username={user.username} role={user.role.value}")


# ---------------------------------------------------------------------------
# Catalog mutations (ADMIN only)
# ---------------------------------------------------------------------------

@main.command("add-product")
@_credentials
@click.option("--name", required=True)
@click.option("--brand", required=True)
@click.option("--category", required=True)
@click.option("--price", required=True, type=float)
@click.pass_obj
def add_product(
    app: CatalogApp,
    username: str,
    password: str,
    name: str,
    brand: str,
    category: str,
    price: float,
) -> None:
    """Add a product to the catalog."""
    with _login(app, username, password) as session:
        candidate = Product(name=name, brand=brand, category=category, price=price)
        product = _check(app.pipeline.create_product(session, candidate))
    click.echo(f"Added {product}")


@main.command("update-product")
@_credentials
@click.option("--id", "product_id", required=True, type=int)
@click.option("--name", default=None)
@click.option("--brand", default=None)
@click.option("--category", default=None)
@click.option("--price", default=None, type=float)
@click.pass_obj
def update_product(
    app: CatalogApp,
    username: str,
    password: str,
    product_id: int,
    name: str | None,
    brand: str | None,
    category: str | None,
    price: float | None,
) -> None:
    """Update a product. Omitted fields keep their current value."""
    with _login(app, username, password) as session:
        current = _check(app.pipeline.find_product_by_id(session, product_id))
        if current is None:
            if None in (name, brand, category, price):
                raise click.ClickException(
                    f"{ErrorKind.NOT_FOUND.value}: Product with id={product_id} does not exist"
                )
            # Every field given: the pipeline records the failed update
            current = Product()
        changed = Product(
            id=product_id,
            name=current.name if name is None else name,
            brand=current.brand if brand is None else brand,
            category=current.category if category is None else category,
            price=current.price if price is None else price,
        )
        product = _check(app.pipeline.update_product(session, changed))
    click.echo(f"Updated {product}")


@main.command("delete-product")
@_credentials
@click.option("--id", "product_id", required=True, type=int)
@click.pass_obj
def delete_product(app: CatalogApp, username: str, password: str, product_id: int) -> None:
    """Delete a product by id."""
    with _login(app, username, password) as session:
        _check(app.pipeline.delete_product(session, product_id))
    click.echo(f"Deleted product id={product_id}")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def _echo_products(products: list[Product]) -> None:
    if not products:
        click.echo("No products found.")
        return
    for product in products:
        click.echo(str(product))


@main.command("list-products")
@click.pass_obj
def list_products(app: CatalogApp) -> None:
    """List every product ordered by id."""
    with _login(app, None, None) as session:
        _echo_products(_check(app.pipeline.list_products(session)))


@main.command()
@click.option("--brand", default=None, help="Brand (case-insensitive)")
@click.option("--category", default=None, help="Category (case-insensitive)")
@click.option("--min-price", default=None, type=float)
@click.option("--max-price", default=None, type=float)
@click.option("--username", default=None, help="Optional user to attribute the search to")
@click.option("--password", default=None)
@click.pass_obj
def find(
    app: CatalogApp,
    brand: str | None,
    category: str | None,
    min_price: float | None,
    max_price: float | None,
    username: str | None,
    password: str | None,
) -> None:
    """Filter products by brand, category or price range."""
    price_range = min_price is not None or max_price is not None
    chosen = sum([brand is not None, category is not None, price_range])
    if chosen != 1:
        raise click.UsageError("Give exactly one of --brand, --category or a price range")
    if price_range and (min_price is None or max_price is None):
        raise click.UsageError("A price range needs both --min-price and --max-price")

    with _login(app, username, password) as session:
        if brand is not None:
            result = app.pipeline.find_by_brand(session, brand)
        elif category is not None:
            result = app.pipeline.find_by_category(session, category)
        else:
            result = app.pipeline.find_by_price_range(session, min_price, max_price)
        _echo_products(_check(result))


# ---------------------------------------------------------------------------
# Audit / metrics
# ---------------------------------------------------------------------------

@main.command()
@click.option("--limit", default=20, type=int, help="Number of events to show (0 = all)")
@click.pass_obj
def audit(app: CatalogApp, limit: int) -> None:
    """Show audit events, newest first."""
    events = app.audit.get_all_events()
    if limit > 0:
        events = events[:limit]
    if not events:
        click.echo("No audit events.")
        return
    for event in events:
        click.echo(str(event))


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
@click.pass_obj
def metrics(app: CatalogApp, as_json: bool) -> None:
    """Show counters, gauges and operation timings."""
    with _login(app, None, None) as session:
        _check(app.pipeline.count_products(session))
    snapshot = app.metrics.snapshot()

    if as_json:
        click.echo(snapshot.model_dump_json(indent=2))
        return

    click.echo("Counters:")
    for name, value in sorted(snapshot.counters.items()):
        click.echo(f"  {name:25s} {value}")
    click.echo("Gauges:")
    for name, value in sorted(snapshot.gauges.items()):
        click.echo(f"  {name:25s} {value:g}")
    click.echo("Operations:")
    for name, stats in sorted(snapshot.operations.items()):
        click.echo(f"  {name:25s} count={stats.count} avg={stats.average_ms:.3f}ms")
