"""CLI commands for inventory management."""

from __future__ import annotations

import click

from stockledger.application.show_inventory import ShowInventoryHandler
from stockledger.application.show_stock_history import ShowStockHistoryHandler
from stockledger.application.stock_inventory import (
    ReceiveStockHandler,
    StockInventoryHandler,
)
from stockledger.domain.exceptions import DomainException
from stockledger.infrastructure.bootstrap import ledger, unit_of_work_factory


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--warehouse", "warehouse_id", required=True, help="Warehouse ID.")
@click.option("--quantity", required=True, type=int, help="Units in stock.")
def inventory_set(product_id: str, warehouse_id: str, quantity: int) -> None:
    """Set the stock level of a product at a warehouse."""
    handler = StockInventoryHandler(ledger=ledger())

    try:
        stock = handler.handle(product_id, warehouse_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock for product {product_id} at {warehouse_id} set to {stock}")


@click.command("receive")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--warehouse", "warehouse_id", required=True, help="Warehouse ID.")
@click.option("--quantity", required=True, type=int, help="Units received.")
def inventory_receive(product_id: str, warehouse_id: str, quantity: int) -> None:
    """Add a delivery to existing stock."""
    handler = ReceiveStockHandler(ledger=ledger())

    try:
        stock = handler.handle(product_id, warehouse_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Received {quantity} of product {product_id} at {warehouse_id} (stock={stock})")


@click.command("show")
@click.option(
    "--low-stock",
    "threshold",
    type=int,
    default=None,
    help="Only show records at or below this stock level.",
)
def inventory_show(threshold: int | None) -> None:
    """Show current inventory levels."""
    handler = ShowInventoryHandler(uow_factory=unit_of_work_factory())
    try:
        lines = handler.handle(low_stock_threshold=threshold)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Product':<20} {'Warehouse':<12} {'Stock':>8}  {'Last update':<25}")
    click.echo("-" * 68)
    for line in lines:
        flag = "  BACKORDER" if line.backordered else ""
        click.echo(
            f"{line.product_name:<20} {line.warehouse_id:<12} {line.stock:>8}  "
            f"{line.last_stock_date:<25}{flag}"
        )


@click.command("history")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--warehouse", "warehouse_id", required=True, help="Warehouse ID.")
def inventory_history(product_id: str, warehouse_id: str) -> None:
    """Show every stock movement for a product at a warehouse."""
    handler = ShowStockHistoryHandler(uow_factory=unit_of_work_factory())
    try:
        movements = handler.handle(product_id, warehouse_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{'When':<33} {'Kind':<9} {'Change':>7} {'Before':>7} {'After':>7}")
    click.echo("-" * 67)
    for m in movements:
        click.echo(
            f"{m.occurred_at:<33} {m.kind:<9} {m.quantity_change:>+7} "
            f"{m.previous_level:>7} {m.new_level:>7}"
        )
