import typer
from pathlib import Path
from typing import Optional
from datetime import date

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from financeflow.categorization import CategorizationEngine
from financeflow.config.settings import DEFAULT_DB_PATH, DEFAULT_USER_ID
from financeflow.database.connection import DatabaseConfig, DatabaseManager
from financeflow.domain.enums import EntryDirection, TransactionType
from financeflow.logging_setup import configure_logging
from financeflow.parsers.factory import ParserFactory
from financeflow.parsers.llm_response import LlmResponseParser
from financeflow.repositories.sqlite_transaction_repository import SQLiteTransactionRepository
from financeflow.services.transaction_service import TransactionService

app = typer.Typer(
    name="financeflow",
    help="Import, categorize and analyze bank statements",
    add_completion=False,
)

console = Console()


class State:
    verbose: bool = False
    user_id: str = DEFAULT_USER_ID
    db_path: str = DEFAULT_DB_PATH
    _service: Optional[TransactionService] = None

    @property
    def service(self) -> TransactionService:
        """Opened on first use so `normalize` never touches the database"""
        if self._service is None:
            db_manager = DatabaseManager(DatabaseConfig(self.db_path))
            db_manager.initialize()
            repository = SQLiteTransactionRepository(db_manager)
            self._service = TransactionService(repository, user_id=self.user_id)
        return self._service


state = State()


def _fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {e}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def _amount_markup(amount, outgoing: bool) -> str:
    if outgoing:
        return f"[red]-₹{amount:,.2f}[/red]"
    return f"[green]+₹{amount:,.2f}[/green]"


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output and debug logging",
    ),
    user: str = typer.Option(
        DEFAULT_USER_ID,
        "--user", "-u",
        help="Whose transactions to work with",
    ),
    db: str = typer.Option(
        DEFAULT_DB_PATH,
        "--db",
        help="SQLite database file",
    ),
):
    """
    FinanceFlow - turn bank statements into categorized transactions.
    """
    configure_logging("DEBUG" if verbose else None)
    ParserFactory.load_parsers_from_config()

    state.verbose = verbose
    state.user_id = user
    state.db_path = db


@app.command(name="import")
def import_transactions(
    filepath: Path = typer.Argument(
        ...,
        help="Statement file (PDF, CSV/Excel export, or saved LLM reply)",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    source: str = typer.Option(
        "pdf",
        "--source", "-s",
        help="Parser to use (pdf, spreadsheet, llm-json)"
    ),
    password: Optional[str] = typer.Option(
        None,
        "--password", "-p",
        help="Password for protected PDF statements",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Preview without saving to database",
    ),
):
    """
    Import transactions from a bank statement.

    Examples:
        financeflow import hdfc_march.pdf
        financeflow import export.csv --source spreadsheet --dry-run
        financeflow --user priya import reply.json --source llm-json
    """
    try:
        console.print(Panel.fit(
            f"[bold cyan]Import Configuration[/bold cyan]\n"
            f"File: {filepath}\n"
            f"Source: {source}\n"
            f"User: {state.user_id}\n"
            f"Mode: {'DRY RUN' if dry_run else 'LIVE'}",
            border_style="cyan"
        ))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Importing transactions...", total=None)

            result = state.service.import_statement(
                filepath=filepath,
                source=source,
                dry_run=dry_run,
                password=password,
            )

            progress.update(task, completed=True)

        console.print(f"\n[bold]Found {result.total_parsed} transactions[/bold]")
        if result.bank_name or result.account_number:
            console.print(
                f"[dim]{result.bank_name or 'Unknown bank'}"
                f"{' ••' + result.account_number if result.account_number else ''}"
                f"{' | ' + result.statement_period if result.statement_period else ''}[/dim]"
            )

        preview = result.imported + result.skipped
        if preview:
            preview_table = Table(title=f"Preview (first {min(len(preview), 10)})")
            preview_table.add_column("Date", style="cyan")
            preview_table.add_column("Description", style="white")
            preview_table.add_column("Payee", style="white")
            preview_table.add_column("Category", style="magenta")
            preview_table.add_column("Amount", justify="right")
            preview_table.add_column("Status", justify="center")

            imported_ids = {id(t) for t in result.imported}
            for txn in preview[:10]:
                status = "[green]NEW[/green]" if id(txn) in imported_ids else "[yellow]DUP[/yellow]"
                preview_table.add_row(
                    str(txn.date),
                    txn.description[:40],
                    txn.payee or "",
                    txn.category or "Uncategorized",
                    _amount_markup(txn.amount, txn.type != TransactionType.INCOME),
                    status
                )

            console.print("\n")
            console.print(preview_table)

        for message in result.error_messages:
            console.print(f"[red]✗[/red] {message}")

        console.print("")
        if dry_run:
            console.print("[yellow]DRY RUN - No changes made[/yellow]")
            console.print(f"[green]✓[/green] Would import: {result.new_transactions}")
            console.print(f"[yellow]⏭️[/yellow]  Would skip: {result.duplicates_skipped}")
        else:
            console.print(f"[bold green]✓ Imported {result.new_transactions} new transactions[/bold green]")
            if result.duplicates_skipped > 0:
                console.print(f"[yellow]⏭️  Skipped {result.duplicates_skipped} duplicates[/yellow]")

        if result.parsing_notes and state.verbose:
            console.print(f"[dim]{result.parsing_notes}[/dim]")

    except Exception as e:
        _fail(e)


@app.command(name="normalize")
def normalize(
    filepath: Path = typer.Argument(
        ...,
        help="Saved LLM reply (JSON or text)",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
):
    """
    Show how an LLM reply would be normalized, without saving anything.

    Example:
        financeflow normalize reply.json
    """
    try:
        statement = LlmResponseParser().parse(filepath)

        table = Table(title=f"{len(statement.transactions)} transactions")
        table.add_column("Date", style="cyan")
        table.add_column("Description", style="white", max_width=40)
        table.add_column("Payee")
        table.add_column("Category", style="magenta")
        table.add_column("Amount", justify="right")
        table.add_column("Conf.", justify="right", style="dim")

        for txn in statement.transactions:
            table.add_row(
                txn.date,
                txn.description,
                txn.payee or "",
                txn.category or "",
                _amount_markup(txn.amount, txn.type == EntryDirection.DEBIT),
                f"{txn.confidence:.2f}",
            )

        console.print(table)
        if statement.parsing_notes:
            console.print(f"[dim]{statement.parsing_notes}[/dim]")

    except Exception as e:
        _fail(e)


@app.command(name="categorize")
def categorize(
    description: Optional[str] = typer.Argument(
        None,
        help="Categorize this description instead of stored transactions",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Re-categorize transactions that already have a category",
    ),
):
    """
    Categorize one description, or the stored transactions.

    Examples:
        financeflow categorize "UPI-ZOMATO ORDER 4521"
        financeflow categorize --overwrite
    """
    try:
        if description is not None:
            engine = CategorizationEngine()
            console.print(f"[magenta]{engine.categorize(description)}[/magenta]")
            if state.verbose:
                console.print(f"\n[dim]{engine.get_rule_chain_info()}[/dim]")
            return

        count = state.service.categorize_transactions(overwrite=overwrite)
        console.print(f"[bold green]✓ Categorized {count} transactions[/bold green]")

    except Exception as e:
        _fail(e)


@app.command(name="report")
def report(
    month: Optional[int] = typer.Option(
        None,
        "--month", "-m",
        help="Month (1-12)",
        min=1,
        max=12
    ),
    year: Optional[int] = typer.Option(
        None,
        "--year", "-y",
        help="Year",
    ),
):
    """
    Monthly income and spending report.

    Examples:
        financeflow report
        financeflow report --month 3 --year 2024
    """
    try:
        today = date.today()
        summary = state.service.get_monthly_summary(
            year=year or today.year,
            month=month or today.month,
        )

        month_name = summary.start_date.strftime("%B %Y")
        console.print(f"\n[bold cyan]Monthly Report: {month_name}[/bold cyan]")

        if summary.total_transactions == 0:
            console.print(Panel(
                "[yellow]No transactions found for this month[/yellow]",
                title="Empty Report",
                border_style="yellow"
            ))
            return

        summary_text = (
            f"[bold]Transactions:[/bold] {summary.total_transactions}\n\n"
            f"[red]💸 Expenses:[/red]  ₹{summary.total_expenses:>12,.2f}\n"
            f"[green]💰 Income:[/green]    ₹{summary.total_income:>12,.2f}\n"
            f"{'─' * 30}\n"
        )
        net_style = "green" if summary.net_flow >= 0 else "red"
        net_icon = "📈" if summary.net_flow >= 0 else "📉"
        summary_text += f"[bold {net_style}]{net_icon} Net:[/bold {net_style}]      ₹{summary.net_flow:>12,.2f}"

        console.print(Panel(
            summary_text,
            title=f"[bold]{month_name} Summary[/bold]",
            border_style="cyan",
            padding=(1, 2)
        ))

        if summary.spending_by_category:
            console.print("\n[bold]Top Spending Categories[/bold]")

            category_table = Table(show_header=True, box=None, padding=(0, 2))
            category_table.add_column("Category", style="cyan", no_wrap=True)
            category_table.add_column("Amount", justify="right", style="red")
            category_table.add_column("% of Total", justify="right", style="dim")

            for category, amount in summary.top_spending_categories[:10]:
                percentage = (amount / summary.total_expenses * 100) if summary.total_expenses > 0 else 0
                category_table.add_row(
                    category,
                    f"₹{amount:,.2f}",
                    f"{percentage:.1f}%"
                )

            console.print(category_table)

        recent = sorted(summary.expenses + summary.income, key=lambda t: t.date, reverse=True)

        txn_table = Table(title="Recent Transactions", show_header=True, padding=(0, 1))
        txn_table.add_column("Date", style="cyan", width=12)
        txn_table.add_column("Description", style="white", max_width=40)
        txn_table.add_column("Category", style="dim", width=15)
        txn_table.add_column("Amount", justify="right", width=14)

        for txn in recent[:15]:
            desc = txn.description[:37] + "..." if len(txn.description) > 40 else txn.description
            txn_table.add_row(
                str(txn.date),
                desc,
                txn.category or "Uncategorized",
                _amount_markup(txn.amount, txn.type != TransactionType.INCOME),
            )

        console.print("")
        console.print(txn_table)

        if len(recent) > 15:
            console.print(f"\n[dim]Showing 15 of {len(recent)} transactions[/dim]")

    except Exception as e:
        _fail(e)


@app.command(name="subscriptions")
def subscriptions():
    """
    List recurring payments found in the last 12 months.

    Example:
        financeflow subscriptions
    """
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Looking for recurring payments...", total=None)
            result = state.service.detect_subscriptions()
            progress.update(task, completed=True)

        if not result.subscriptions and not result.recurring_payments:
            console.print("[yellow]No recurring payments found[/yellow]")
            return

        for title, items in (
            ("Subscriptions", result.subscriptions),
            ("Other Recurring Payments", result.recurring_payments),
        ):
            if not items:
                continue

            table = Table(title=title)
            table.add_column("Name", style="cyan")
            table.add_column("Category", style="magenta")
            table.add_column("Frequency")
            table.add_column("Amount", justify="right", style="red")
            table.add_column("Per Month", justify="right")
            table.add_column("Last Paid", style="dim")
            table.add_column("Conf.", justify="right", style="dim")

            for sub in items:
                table.add_row(
                    sub.name,
                    sub.category,
                    sub.frequency.value,
                    f"₹{sub.amount:,.2f}",
                    f"₹{sub.monthly_cost:,.2f}",
                    str(sub.last_payment),
                    f"{sub.confidence:.2f}",
                )

            console.print(table)

        console.print(
            f"\n[bold]Subscriptions per month:[/bold] ₹{result.total_monthly_cost:,.2f}"
        )
        if result.unused:
            names = ", ".join(sub.name for sub in result.unused)
            console.print(
                f"[yellow]No payment in over 60 days:[/yellow] {names} "
                f"(could save ₹{result.potential_savings:,.2f}/month)"
            )

    except Exception as e:
        _fail(e)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
