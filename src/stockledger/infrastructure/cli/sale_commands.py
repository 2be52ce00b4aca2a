"""CLI commands for recording sales and reading stock."""

from __future__ import annotations

import click

from stockledger.application.record_sale import RecordSaleHandler
from stockledger.domain.exceptions import DomainException
from stockledger.infrastructure.bootstrap import ledger


@click.command("record")
@click.option("--order", "order_id", required=True, help="Order ID.")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--warehouse", "warehouse_id", required=True, help="Warehouse to ship from.")
@click.option("--quantity", required=True, type=int, help="Units sold.")
@click.option("--price", default=None, help="Unit price charged (defaults to catalog price).")
def sale_record(
    order_id: str, product_id: str, warehouse_id: str, quantity: int, price: str | None
) -> None:
    """Record an order line and take it out of stock."""
    handler = RecordSaleHandler(ledger=ledger())

    try:
        receipt = handler.handle(
            order_id=order_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            unit_price=price,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Sale {receipt.sale_id} recorded for order {receipt.order_id}")
    click.echo(
        f"  {receipt.quantity} x {receipt.unit_price} = {receipt.total_sale}"
        f"  (stock left at {receipt.warehouse_id}: {receipt.stock_after})"
    )


@click.command("stock")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--warehouse", "warehouse_id", required=True, help="Warehouse ID.")
def stock_show(product_id: str, warehouse_id: str) -> None:
    """Print the current stock of a product at a warehouse."""
    try:
        stock = ledger().current_stock(product_id, warehouse_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(str(stock))
