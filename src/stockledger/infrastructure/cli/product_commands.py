"""CLI commands for the product catalog."""

from __future__ import annotations

import click

from stockledger.application.add_product import AddProductHandler
from stockledger.domain.exceptions import DomainException
from stockledger.infrastructure.bootstrap import unit_of_work_factory


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--cogs", default=None, help="Cost of goods sold per unit.")
@click.option("--category", default=None, help="Category ID.")
def product_add(name: str, price: str, cogs: str | None, category: str | None) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(uow_factory=unit_of_work_factory())

    try:
        product = handler.handle(name=name, price=price, cogs=cogs, category_id=category)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product #{product.id} '{product.name}' added at {product.price}")


@click.command("list")
def product_list() -> None:
    """List all products in the catalog."""
    try:
        with unit_of_work_factory()() as uow:
            products = uow.products.list_all()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Margin':>10}")
    click.echo("-" * 49)
    for p in products:
        margin = str(p.unit_margin) if p.unit_margin is not None else "-"
        click.echo(f"{p.id:<6} {p.name:<20} {str(p.price):>10} {margin:>10}")
