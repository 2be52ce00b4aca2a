import click

from stockledger.infrastructure.cli.inventory_commands import (
    inventory_history,
    inventory_receive,
    inventory_set,
    inventory_show,
)
from stockledger.infrastructure.cli.product_commands import product_add, product_list
from stockledger.infrastructure.cli.sale_commands import sale_record, stock_show
from stockledger.infrastructure.config import get_settings
from stockledger.infrastructure.logging_config import configure_logging


@click.group()
@click.option("--log-level", default=None, help="Override STOCKLEDGER_LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Stock Ledger: inventory kept in step with recorded sales"""
    settings = get_settings()
    configure_logging(log_level or settings.log_level, settings.environment)


@cli.group()
def product() -> None:
    """Manage the product catalog."""


@cli.group()
def inventory() -> None:
    """Manage inventory records."""


@cli.group()
def sale() -> None:
    """Record sales."""


# Register subcommands
product.add_command(product_add)
product.add_command(product_list)
inventory.add_command(inventory_set)
inventory.add_command(inventory_receive)
inventory.add_command(inventory_show)
inventory.add_command(inventory_history)
sale.add_command(sale_record)
cli.add_command(stock_show)
