"""AECCheck CLI.

Commands:
- init: Create the parameter check tables
- disciplines: List the discipline catalog
- analyze: Run a discipline analysis (optionally saving it as a check)
- latest: Show the latest saved check for a model/discipline
- rollup: Show the project-wide compliance rollup
- web serve: Run the HTTP API
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from aeccheck.aec.client import AECGraphQLClient
from aeccheck.analysis.category import CategoryAnalyzer
from aeccheck.analysis.orchestrator import DisciplineAnalysisOrchestrator
from aeccheck.catalog import get_catalog
from aeccheck.checks.gateway import CheckPersistenceGateway
from aeccheck.config import get_config
from aeccheck.core.logging import configure_logging
from aeccheck.db.connection import close_db, get_engine, get_session
from aeccheck.db.models import Base
from aeccheck.errors import AECCheckError
from aeccheck.models import AnalysisStatus, Check

app = typer.Typer(
    name="aeccheck",
    help="AECCheck - Discipline-based parameter compliance for AEC models",
    no_args_is_help=True,
)
web_cli = typer.Typer(help="Web API")
app.add_typer(web_cli, name="web")

console = Console()


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    configure_logging(level=log_level)


def _pct_style(pct: int) -> str:
    if pct >= 100:
        return "green"
    if pct >= 50:
        return "yellow"
    return "red"


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        engine = get_engine()
        async with engine.begin() as conn:
            if drop:
                console.print("[yellow]Dropping existing tables...[/yellow]")
                await conn.run_sync(Base.metadata.drop_all)
            console.print("[green]Creating tables...[/green]")
            await conn.run_sync(Base.metadata.create_all)
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def disciplines():
    """List disciplines and their categories."""
    catalog = get_catalog()

    table = Table(title=f"Discipline catalog (v{catalog.version})")
    table.add_column("Discipline", style="cyan")
    table.add_column("Category")
    table.add_column("Query", style="dim")
    table.add_column("Required", justify="right")

    for discipline in catalog.disciplines:
        for index, category in enumerate(discipline.categories):
            table.add_row(
                f"{discipline.id} - {discipline.name}" if index == 0 else "",
                category.name,
                category.query,
                str(len(category.required_parameters)),
            )

    console.print(table)


@app.command()
def analyze(
    project_id: str = typer.Option(..., "--project", help="AEC project ID"),
    model_id: str = typer.Option(..., "--model", help="Model (element group) ID"),
    discipline_id: str = typer.Option(..., "--discipline", help="Discipline ID (e.g. ARC)"),
    model_name: str = typer.Option("", "--model-name", help="Display name stored with the check"),
    save: bool = typer.Option(False, "--save", help="Save the result as a new check"),
    token: str | None = typer.Option(None, "--token", envvar="AEC_ACCESS_TOKEN", help="AEC token"),
):
    """Analyze every category of a discipline for one model."""
    config = get_config()
    catalog = get_catalog()

    try:
        discipline = catalog.get(discipline_id)
    except AECCheckError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    if not token:
        console.print("[red]Missing AEC access token (--token or AEC_ACCESS_TOKEN)[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[bold]Analyzing[/bold] {discipline.id} ({len(discipline.categories)} categories) "
        f"for model {model_id}"
    )

    async def _analyze():
        async with AECGraphQLClient(token, config=config.aec) as client:
            orchestrator = DisciplineAnalysisOrchestrator(
                CategoryAnalyzer(
                    client,
                    catalog=catalog,
                    fallback_total=config.analysis.fallback_required_total,
                ),
                delay_seconds=config.analysis.inter_category_delay_seconds,
                category_timeout_seconds=config.analysis.category_timeout_seconds,
            )
            result = await orchestrator.run(project_id, model_id, discipline)

        table = Table(title=f"{discipline.name} compliance")
        table.add_column("Category", style="cyan")
        table.add_column("Elements", justify="right")
        table.add_column("Avg %", justify="right")
        table.add_column("100%", justify="right")

        for category in discipline.categories:
            summary = result.category_summaries.get(category.id)
            if summary is None:
                continue
            failed = category.name in result.failed_categories
            table.add_row(
                f"{category.name} [red](failed)[/red]" if failed else category.name,
                str(summary.total_elements),
                f"[{_pct_style(summary.average_compliance_pct)}]"
                f"{summary.average_compliance_pct}[/]",
                str(summary.fully_compliant),
            )

        table.add_section()
        table.add_row(
            "[bold]Discipline[/bold]",
            str(result.summary.total_elements),
            f"[bold]{result.summary.average_compliance_pct}[/bold]",
            str(result.summary.fully_compliant),
        )
        console.print(table)

        if result.status == AnalysisStatus.FAILED:
            console.print(f"[red]{result.message}[/red]")
            raise typer.Exit(code=2)

        console.print(result.message)

        if not save:
            return

        async with get_session() as session:
            saved = await CheckPersistenceGateway(session).save(
                Check(
                    project_id=project_id,
                    model_id=model_id,
                    model_name=model_name,
                    discipline_id=discipline.id,
                    rows=result.rows,
                    summary=result.summary,
                )
            )
        await close_db()
        console.print(
            f"[bold green]✓[/bold green] Check saved successfully "
            f"({saved.saved_elements} elements): {saved.check_id}"
        )

    try:
        asyncio.run(_analyze())
    except AECCheckError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def latest(
    project_id: str = typer.Option(..., "--project", help="AEC project ID"),
    model_id: str = typer.Option(..., "--model", help="Model ID"),
    discipline_id: str | None = typer.Option(
        None, "--discipline", help="Discipline ID (default: last analyzed)"
    ),
    limit: int = typer.Option(20, "--limit", help="Rows to show"),
):
    """Show the latest saved check for a model."""

    async def _latest():
        async with get_session() as session:
            gateway = CheckPersistenceGateway(session)
            wanted = discipline_id
            if wanted is None:
                last = await gateway.get_latest_discipline_for_model(project_id, model_id)
                if last is None:
                    console.print("[yellow]No checks saved for this model[/yellow]")
                    return
                wanted = last.discipline_id

            check = await gateway.get_latest(project_id, model_id, wanted)
        await close_db()

        if check is None:
            console.print(f"[yellow]No {wanted} check saved for this model[/yellow]")
            return

        console.print(f"[bold]{check.check_id}[/bold] saved {check.timestamp.isoformat()}")
        console.print(
            f"  {check.summary.total_elements} elements, "
            f"avg {check.summary.average_compliance_pct}%, "
            f"{check.summary.fully_compliant} fully compliant"
        )

        table = Table(title=f"{check.discipline_id} elements")
        table.add_column("Element", style="cyan")
        table.add_column("Category")
        table.add_column("Family")
        table.add_column("Filled", justify="right")
        table.add_column("%", justify="right")

        for row in check.rows[:limit]:
            table.add_row(
                row.revit_element_id or row.element_id,
                row.category,
                row.family_name,
                f"{row.compliance.filled}/{row.compliance.total}",
                f"[{_pct_style(row.compliance.pct)}]{row.compliance.pct}[/]",
            )

        console.print(table)
        if len(check.rows) > limit:
            console.print(f"[dim]... {len(check.rows) - limit} more rows[/dim]")

    asyncio.run(_latest())


@app.command()
def rollup(
    project_id: str = typer.Option(..., "--project", help="AEC project ID"),
):
    """Show per-model compliance for a project."""

    async def _rollup():
        async with get_session() as session:
            result = await CheckPersistenceGateway(session).get_project_rollup(project_id)
        await close_db()

        if not result.rows:
            console.print("[yellow]No checks saved for this project[/yellow]")
            return

        table = Table(title="Project parameter compliance")
        table.add_column("Model", style="cyan")
        table.add_column("Elements", justify="right")
        table.add_column("Compliance %", justify="right")
        table.add_column("Last check")

        for row in result.rows:
            table.add_row(
                row.model_name or row.model_id,
                str(row.total_elements),
                f"[{_pct_style(row.model_compliance_pct)}]{row.model_compliance_pct}[/]",
                row.last_check_at.strftime("%Y-%m-%d %H:%M") if row.last_check_at else "-",
            )

        table.add_section()
        table.add_row(
            f"[bold]{result.grand_total.analyzed_models} models[/bold]",
            str(result.grand_total.total_elements),
            f"[bold]{result.grand_total.average_compliance_pct}[/bold]",
            "",
        )
        console.print(table)

    asyncio.run(_rollup())


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI app."""
    import uvicorn

    typer.echo(f"Starting AECCheck API on http://{host}:{port}")
    uvicorn.run("aeccheck.web.app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    app()
