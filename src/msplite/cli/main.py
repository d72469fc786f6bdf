"""MSP Lite CLI — talks to the schedule backend through a local session."""

import asyncio
import json
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from msplite import __version__
from msplite.client.backend import BackendClient, BackendError
from msplite.core.config import get_settings
from msplite.graph.engine import EdgeRejected
from msplite.graph.normalize import LinkType
from msplite.schedule.view import format_date
from msplite.schemas.project import MILESTONE_FIELDS, ProjectCreate
from msplite.session.controller import MissingEdgeId, ScheduleSession, SessionBusy, UnknownEdge

app = typer.Typer(
    name="msplite",
    help="Project schedule viewer/editor with dependency integrity checks",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

ProjectOpt = typer.Option(None, "--project", "-p", help="Project ID (default from settings)")


def _session(project: Optional[str]) -> ScheduleSession:
    settings = get_settings()
    client = BackendClient(settings.backend_url, timeout=settings.backend_timeout)
    return ScheduleSession(
        client,
        project_id=project or settings.default_project_id,
        buffer_days=settings.buffer_days,
    )


def _run(project: Optional[str], action: Callable[[ScheduleSession], Awaitable[T]]) -> T:
    """Load the project, run ``action`` against the session, report failures."""
    session = _session(project)

    async def _go():
        async with session.client:
            await session.load()
            return await action(session)

    try:
        return asyncio.run(_go())
    except EdgeRejected as e:
        console.print(f"[yellow]Rejected ({e.reason.value}):[/yellow] {e}")
        raise typer.Exit(1)
    except (MissingEdgeId, UnknownEdge, SessionBusy) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except BackendError as e:
        settings = get_settings()
        console.print(f"[red]Error:[/red] {e}")
        console.print(f"  Backend: {settings.backend_url}")
        raise typer.Exit(1)


async def _noop(session: ScheduleSession) -> ScheduleSession:
    return session


def _print_summary(session: ScheduleSession) -> None:
    view = session.state.view
    kpis = view.kpis()
    project = view.project or {}
    version = view.version or {}
    console.print(f"\n[bold]{project.get('ProjectName') or 'Project'}[/bold]")
    console.print(
        f"  ProjectId: {project.get('ProjectId', session.state.project_id)}"
        f" • Version: {version.get('versionNo', '—')}"
        f" • LOI Start: {format_date(view.project_start) or '—'}"
        f" • Finish: {format_date(kpis['finishDate']) or '—'}"
        f" • Critical: {kpis['critical']}/{kpis['totalTasks']}"
    )
    if view.needs_start_date:
        console.print("[yellow]Missing LOI/projectStartDate from API — target dates unavailable[/yellow]")
    for issue in session.graph.issues():
        console.print(f"[yellow]Backend data has a {issue.kind}:[/yellow] {' → '.join(issue.tasks)}")


# ─── Views ───


@app.command()
def load(project: Optional[str] = ProjectOpt):
    """Load a project and show its summary."""
    session = _run(project, _noop)
    _print_summary(session)
    kpis = session.state.view.kpis()
    console.print(
        f"  Tasks: {kpis['totalTasks']} • Completed: {kpis['completed']}"
        f" ({kpis['avgCompletion']}%) • Dependencies: {len(session.graph)}"
    )


@app.command()
def tasks(
    project: Optional[str] = ProjectOpt,
    critical: bool = typer.Option(False, "--critical", help="Only critical tasks"),
):
    """Show the task table with target dates."""
    session = _run(project, _noop)
    _print_summary(session)

    table = Table(title="Tasks", show_lines=False)
    table.add_column("ID", style="dim")
    table.add_column("Workstream")
    table.add_column("Task", style="bold")
    table.add_column("Dur", justify="right")
    table.add_column("Target Start")
    table.add_column("Target Finish")
    table.add_column("Float", justify="right")
    table.add_column("Critical")
    table.add_column("Preds", justify="right")

    for row in session.state.view.task_rows():
        if critical and not row["critical"]:
            continue
        table.add_row(
            row["taskId"] or "—",
            row["workstream"],
            row["name"],
            str(row["durationDays"] if row["durationDays"] is not None else ""),
            format_date(row["targetStart"]),
            format_date(row["targetFinish"]),
            str(row["totalFloat"] if row["totalFloat"] is not None else ""),
            "[yellow]YES[/yellow]" if row["critical"] else "",
            str(len(session.graph.predecessors_of(row["taskId"]))),
        )

    console.print(table)


@app.command()
def deps(
    task: str = typer.Argument(..., help="Task ID"),
    project: Optional[str] = ProjectOpt,
):
    """Show a task's predecessors and successors."""
    session = _run(project, _noop)
    info = session.task_dependencies(task)
    console.print(f"\n[bold]{session.state.view.task_label(task)}[/bold]")

    for title, rows in (("Predecessors", info["predecessors"]), ("Successors", info["successors"])):
        if not rows:
            console.print(f"[dim]{title}: (none)[/dim]")
            continue
        table = Table(title=title)
        table.add_column("Dep ID", style="dim")
        table.add_column("Task")
        table.add_column("Type")
        table.add_column("Lag", justify="right")
        for r in rows:
            table.add_row(
                str(r["taskDependencyId"]) if r["canEdit"] else "[red]missing[/red]",
                r["task"],
                r["linkType"],
                str(r["lagDays"]),
            )
        console.print(table)
        if any(not r["canEdit"] for r in rows):
            console.print("[yellow]Some links lack a TaskDependencyId from getDependencies and cannot be edited[/yellow]")


@app.command()
def issues(project: Optional[str] = ProjectOpt):
    """Report duplicate or cyclic dependencies in the backend data."""
    session = _run(project, _noop)
    found = session.graph.issues()
    if not found:
        console.print("[green]No integrity issues[/green]")
        return
    console.print_json(json.dumps([i.to_dict() for i in found], default=str))


@app.command()
def check(
    predecessor: str = typer.Argument(..., help="Predecessor task ID"),
    successor: str = typer.Argument(..., help="Successor task ID"),
    project: Optional[str] = ProjectOpt,
):
    """Check whether a new dependency would be accepted (no changes made)."""
    session = _run(project, _noop)
    result = session.check(predecessor, successor)
    if result.ok:
        console.print(f"[green]✓[/green] {predecessor} → {successor} can be added")
        return
    console.print(f"[yellow]✗ {result.reason.value}:[/yellow] {result.message}")
    raise typer.Exit(1)


# ─── Edits ───


@app.command()
def link(
    predecessor: str = typer.Argument(..., help="Predecessor task ID"),
    successor: str = typer.Argument(..., help="Successor task ID"),
    link_type: LinkType = typer.Option(LinkType.FS, "--type", "-t", help="Link type"),
    lag: int = typer.Option(0, "--lag", "-l", help="Lag in days"),
    project: Optional[str] = ProjectOpt,
):
    """Add a dependency (validated locally before it is sent)."""
    async def _add(session: ScheduleSession):
        return await session.add_dependency(predecessor, successor, link_type.value, lag)

    _run(project, _add)
    console.print(f"[green]✓[/green] Linked {predecessor} → {successor} ({link_type.value}, lag {lag})")


@app.command()
def relink(
    dependency_id: int = typer.Argument(..., help="TaskDependencyId"),
    link_type: LinkType = typer.Option(LinkType.FS, "--type", "-t", help="Link type"),
    lag: int = typer.Option(0, "--lag", "-l", help="Lag in days"),
    project: Optional[str] = ProjectOpt,
):
    """Change a dependency's link type and lag."""
    async def _update(session: ScheduleSession):
        return await session.update_dependency(dependency_id, link_type.value, lag)

    edge = _run(project, _update)
    console.print(f"[green]✓[/green] Updated {edge.predecessor_id} → {edge.successor_id} ({link_type.value}, lag {lag})")


@app.command()
def unlink(
    dependency_id: int = typer.Argument(..., help="TaskDependencyId"),
    project: Optional[str] = ProjectOpt,
):
    """Remove a dependency."""
    async def _remove(session: ScheduleSession):
        return await session.remove_dependency(dependency_id)

    edge = _run(project, _remove)
    console.print(f"[green]✓[/green] Removed {edge.predecessor_id} → {edge.successor_id}")


@app.command()
def duration(
    task: str = typer.Argument(..., help="Task ID"),
    days: int = typer.Argument(..., min=0, help="New duration in days"),
    project: Optional[str] = ProjectOpt,
):
    """Set a task's duration, then recalculate."""
    async def _update(session: ScheduleSession):
        await session.update_duration(task, days)

    _run(project, _update)
    console.print(f"[green]✓[/green] Duration of task {task} set to {days} days")


@app.command()
def recalc(project: Optional[str] = ProjectOpt):
    """Recalculate the schedule on the backend."""
    async def _recalc(session: ScheduleSession):
        await session.recalculate()
        return session

    session = _run(project, _recalc)
    console.print("[green]✓[/green] Recalculated")
    _print_summary(session)


@app.command(name="new-project")
def new_project(
    name: str = typer.Option(..., "--name", "-n", help="Project name"),
    loi: str = typer.Option(..., "--loi", help="LOI / project start (YYYY-MM-DD)"),
    commissioning: str = typer.Option(..., "--commissioning", help="Commissioning as per contract (YYYY-MM-DD)"),
    template: Optional[str] = typer.Option(None, "--template", help="Template name"),
    milestone: List[str] = typer.Option([], "--milestone", "-m", help="Extra milestone KEY=YYYY-MM-DD"),
):
    """Create a project from a template and load it."""
    settings = get_settings()
    milestones = {"LOI": loi, "COMM_CONTRACT": commissioning}
    for item in milestone:
        key, _, value = item.partition("=")
        milestones[key.strip().upper()] = value.strip()

    try:
        data = ProjectCreate(
            project_name=name,
            template_name=template or settings.default_template,
            milestones=milestones,
        )
    except ValueError as e:
        console.print(f"[red]Invalid project:[/red] {e}")
        console.print(f"  Known milestones: {', '.join(MILESTONE_FIELDS)}")
        raise typer.Exit(1)

    session = _session(None)

    async def _create():
        async with session.client:
            return await session.create_project(data)

    try:
        project_id = asyncio.run(_create())
    except BackendError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    internal = data.commissioning_internal_date(session.buffer_days)
    console.print(f"[green]✓[/green] Created project [bold]{project_id}[/bold]")
    console.print(f"  Internal commissioning: {format_date(internal)} (contract − {session.buffer_days} days)")
    _print_summary(session)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the web server."""
    import uvicorn
    from msplite.server.main import configure_logging, create_app

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level,
    )


@app.command()
def version():
    """Show MSP Lite version."""
    console.print(f"msp-lite v{__version__}")


if __name__ == "__main__":
    app()
