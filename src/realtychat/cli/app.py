"""Main CLI application using Typer."""
import asyncio
import signal
from contextlib import contextmanager
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..backend import ReportStatus, UploadKind
from ..config import Preferences
from ..controller import AdminReview, ChatController
from ..conversation import Message, Role
from ..errors import BackendError, QuotaExceededError, RealtyChatError, ValidationError
from ..session import SessionIdentity
from ..store import namespace_for
from .providers import configure_logging, get_settings, get_store, open_backend, open_controller

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="realtychat",
    help="Terminal client for the real-estate assistant chat backend",
    no_args_is_help=True,
    add_completion=True,
)
session_app = typer.Typer(help="Inspect or reset the chat session", no_args_is_help=True)
reports_app = typer.Typer(help="Review content reports (admin)", no_args_is_help=True)
prefs_app = typer.Typer(help="Show or change chat preferences", no_args_is_help=True)
app.add_typer(session_app, name="session")
app.add_typer(reports_app, name="reports")
app.add_typer(prefs_app, name="prefs")

# Console for rich output
console = Console()

CHAT_HELP = (
    "/clear  /new  /retry  /quota  /history  /bookmark N  "
    "/rate N up|down [reason]  /report N reason  /quit  (Ctrl-C cancels a reply)"
)


@app.callback()
def main_options(
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
):
    """Configure logging before any command runs."""
    configure_logging(log_level or get_settings().log_level)


class StreamPrinter:
    """Prints the streaming assistant message as it grows."""

    def __init__(self, con: Console):
        self._console = con
        self._printed = 0
        self._active = False

    def __call__(self, messages: list[Message]) -> None:
        last = messages[-1] if messages else None
        streaming = last is not None and last.role == Role.ASSISTANT and last.is_streaming
        if streaming:
            if not self._active:
                self._console.print("[bold green]Assistant:[/bold green] ", end="")
                self._active = True
                self._printed = 0
            self._console.print(last.content[self._printed:], end="", markup=False, highlight=False)
            self._printed = len(last.content)
            return
        if not self._active:
            return
        if last is not None and last.role == Role.ASSISTANT and not last.is_error and not last.is_restricted:
            # The done event may carry a final text that differs from the chunks
            self._console.print(last.content[self._printed:], markup=False, highlight=False)
        else:
            self._console.print()
        self._active = False
        self._printed = 0


@contextmanager
def cancel_on_interrupt(controller: ChatController):
    """Make Ctrl-C cancel the in-flight request instead of exiting."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.cancel)
        installed = True
    except NotImplementedError:
        # No loop signal handlers on Windows
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _print_message(index: int, message: Message) -> None:
    if message.role == Role.USER:
        label = "[bold yellow]You[/bold yellow]"
    else:
        label = "[bold green]Assistant[/bold green]"
    flags = []
    if message.is_restricted:
        flags.append("[red]restricted[/red]")
    if message.is_error:
        flags.append("[red]error[/red]")
    suffix = f" ({', '.join(flags)})" if flags else ""
    console.print(f"[dim]{index:>3}[/dim] {label}{suffix}: ", end="")
    console.print(message.content, markup=False, highlight=False)


def _print_quota(controller: ChatController) -> None:
    info = controller.governor.info
    limit = "unlimited" if info.limit is None else str(info.limit)
    remaining = "unlimited" if info.remaining is None else str(info.remaining)
    console.print(f"[dim]Role: {info.role.value}  Remaining: {remaining}/{limit}[/dim]")


async def _handle_command(controller: ChatController, line: str) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    parts = line[1:].split()
    name, args = (parts[0].lower(), parts[1:]) if parts else ("", [])

    if name in ("quit", "exit", "q"):
        return False
    if name == "clear":
        await controller.clear()
    elif name == "new":
        await controller.new_session()
    elif name == "retry":
        errors = [i for i, m in enumerate(controller.conversation) if m.is_error]
        if not errors:
            console.print("[dim]Nothing to retry.[/dim]")
        else:
            with cancel_on_interrupt(controller):
                reply = await controller.retry(errors[-1])
            if reply is not None:
                _print_message(len(controller.conversation) - 1, reply)
    elif name == "quota":
        await controller.governor.refresh()
        _print_quota(controller)
    elif name == "history":
        for index, message in enumerate(controller.conversation):
            _print_message(index, message)
    elif name == "bookmark" and args:
        await controller.toggle_bookmark(int(args[0]))
    elif name == "rate" and len(args) >= 2:
        await controller.rate(int(args[0]), args[1], " ".join(args[2:]) or None)
    elif name == "report" and len(args) >= 2:
        await controller.report(int(args[0]), " ".join(args[1:]))
    else:
        console.print(f"[dim]{CHAT_HELP}[/dim]")
    return True


@app.command()
def chat(
    stream: bool = typer.Option(
        None,
        "--stream/--no-stream",
        help="Override the streaming preference for this run"
    )
):
    """Interactive chat with the assistant."""
    async def _chat():
        settings = get_settings()
        async with open_controller(settings, console) as controller:
            if stream is not None:
                controller.preferences = controller.preferences.with_value("streaming", stream)
            printer = StreamPrinter(console)
            controller.conversation.subscribe(printer)

            console.print(Panel.fit(
                controller.conversation[0].content,
                title="[bold cyan]realtychat[/bold cyan]",
            ))
            console.print(f"[dim]{CHAT_HELP}[/dim]")
            _print_quota(controller)

            draft = await controller.load_draft()
            if draft:
                console.print(f"[dim]Unsent draft: {draft}[/dim]")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue
                if user_input.startswith("/"):
                    try:
                        if not await _handle_command(controller, user_input.strip()):
                            console.print("[dim]Goodbye![/dim]")
                            break
                    except (RealtyChatError, ValueError) as e:
                        console.print(f"[red]{e}[/red]")
                    continue

                try:
                    with cancel_on_interrupt(controller):
                        reply = await controller.submit(user_input)
                except QuotaExceededError as e:
                    console.print(f"[yellow]{e}[/yellow]")
                    continue
                except ValidationError as e:
                    console.print(f"[yellow]{e}[/yellow]")
                    await controller.save_draft(user_input)
                    continue

                if reply is None:
                    console.print("[dim]Cancelled.[/dim]")
                elif reply.is_restricted:
                    console.print(f"[red]{reply.content}[/red]")
                elif reply.is_error:
                    console.print(f"[red]{reply.content}[/red] [dim](type /retry)[/dim]")
                elif not controller.preferences.streaming:
                    console.print("[bold green]Assistant:[/bold green] ", end="")
                    console.print(reply.content, markup=False, highlight=False)
                console.print()

    asyncio.run(_chat())


@app.command()
def quota():
    """Show the prompt quota the backend reports for this caller."""
    async def _quota():
        settings = get_settings()
        async with open_backend(settings) as backend:
            try:
                info = await backend.rate_limit_status()
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold cyan", width=12)
        table.add_column("Value")
        table.add_row("Role", info.role.value)
        table.add_row("Limit", "unlimited" if info.limit is None else str(info.limit))
        table.add_row("Remaining", "unlimited" if info.remaining is None else str(info.remaining))
        table.add_row("Window", f"{info.window_ms // 60000} min" if info.window_ms else "-")
        table.add_row("Resets", info.reset_time or "-")
        console.print(table)

    asyncio.run(_quota())


@app.command()
def history(
    session_id: str = typer.Argument(None, help="Session to show (default: current)")
):
    """Print a session's saved transcript."""
    async def _history():
        settings = get_settings()
        if not settings.authenticated:
            console.print("[red]Error: sign in (REALTYCHAT_USER_ID / REALTYCHAT_AUTH_TOKEN) to view history[/red]")
            raise typer.Exit(code=1)
        async with open_controller(settings, console) as controller:
            if session_id and not await controller.load_history(session_id):
                raise typer.Exit(code=1)
            for index, message in enumerate(controller.conversation):
                _print_message(index, message)

    asyncio.run(_history())


@session_app.command("show")
def session_show():
    """Show the current session id."""
    async def _show():
        settings = get_settings()
        store = get_store(settings)
        await store.connect()
        try:
            identity = SessionIdentity(store, namespace_for(settings.user_id if settings.authenticated else None))
            console.print(await identity.get_or_create_session_id())
        finally:
            await store.disconnect()

    asyncio.run(_show())


@session_app.command("reset")
def session_reset():
    """Clear the transcript and start a new session."""
    async def _reset():
        settings = get_settings()
        async with open_controller(settings, console) as controller:
            if not await controller.clear():
                raise typer.Exit(code=1)
            console.print(f"[dim]New session: {controller.identity.current}[/dim]")

    asyncio.run(_reset())


def _admin_review(backend) -> AdminReview:
    settings = get_settings()
    try:
        return AdminReview(backend, settings.user_role)
    except PermissionError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@reports_app.command("list")
def reports_list(
    status: ReportStatus = typer.Option(
        ReportStatus.PENDING,
        "--status",
        "-s",
        help="Report status to show"
    )
):
    """List content reports."""
    async def _list():
        async with open_backend(get_settings()) as backend:
            review = _admin_review(backend)
            try:
                reports = await review.reports(status)
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

        table = Table(title=f"Reports ({status.value})")
        table.add_column("ID", style="cyan")
        table.add_column("By")
        table.add_column("Category")
        table.add_column("Reason")
        table.add_column("Message", overflow="fold")
        for report in reports:
            table.add_row(
                report.id or "-",
                report.reported_by,
                report.category or "-",
                report.reason or "-",
                report.message_content[:120],
            )
        console.print(table)

    asyncio.run(_list())


def _triage(report_id: str, status: ReportStatus, notes: str | None) -> None:
    async def _run():
        async with open_backend(get_settings()) as backend:
            review = _admin_review(backend)
            try:
                pending = await review.reports(ReportStatus.PENDING)
                report = next((r for r in pending if r.id == report_id), None)
                if report is None:
                    console.print(f"[red]Error: no pending report {report_id}[/red]")
                    raise typer.Exit(code=1)
                if status == ReportStatus.RESOLVED:
                    await review.resolve(report, notes)
                else:
                    await review.dismiss(report, notes)
            except (BackendError, ValueError) as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
        console.print(f"[green]Report {report_id} {status.value}.[/green]")

    asyncio.run(_run())


@reports_app.command("resolve")
def reports_resolve(
    report_id: str = typer.Argument(..., help="Report id"),
    notes: str = typer.Option(None, "--notes", "-n", help="Admin notes")
):
    """Mark a pending report as resolved."""
    _triage(report_id, ReportStatus.RESOLVED, notes)


@reports_app.command("dismiss")
def reports_dismiss(
    report_id: str = typer.Argument(..., help="Report id"),
    notes: str = typer.Option(None, "--notes", "-n", help="Admin notes")
):
    """Dismiss a pending report."""
    _triage(report_id, ReportStatus.DISMISSED, notes)


@reports_app.command("delete")
def reports_delete(report_id: str = typer.Argument(..., help="Report id")):
    """Delete a report."""
    async def _delete():
        async with open_backend(get_settings()) as backend:
            review = _admin_review(backend)
            try:
                await review.delete_report(report_id)
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
        console.print(f"[green]Report {report_id} deleted.[/green]")

    asyncio.run(_delete())


@app.command()
def ratings():
    """Show the aggregate ratings summary (admin)."""
    async def _ratings():
        async with open_backend(get_settings()) as backend:
            review = _admin_review(backend)
            try:
                all_ratings = await review.ratings()
                summary = await review.rating_summary()
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

        console.print(f"[green]+{summary['up']}[/green]  [red]-{summary['down']}[/red]")
        table = Table()
        table.add_column("Session", style="cyan")
        table.add_column("#")
        table.add_column("Rating")
        table.add_column("Reason")
        for rating in all_ratings:
            table.add_row(rating.session_id, str(rating.message_index), rating.rating.value, rating.reason or "-")
        console.print(table)

    asyncio.run(_ratings())


@app.command()
def upload(
    kind: UploadKind = typer.Argument(..., help="Upload kind"),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload")
):
    """Upload a file and print its hosted URL."""
    async def _upload():
        async with open_backend(get_settings()) as backend:
            try:
                url = await backend.uploads.upload(kind, path)
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)
        console.print(url)

    asyncio.run(_upload())


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text"),
    limit: int = typer.Option(5, "--limit", "-n", help="Maximum results")
):
    """Search properties, as used by @mentions."""
    async def _search():
        async with open_backend(get_settings()) as backend:
            try:
                results = await backend.properties.search(query, limit=limit)
            except BackendError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

        table = Table()
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("City")
        table.add_column("Price", justify="right")
        for item in results:
            price = f"{item.price:,.0f}" if item.price is not None else "-"
            table.add_row(item.id, item.name, item.city or "-", price)
        console.print(table)

    asyncio.run(_search())


@prefs_app.command("show")
def prefs_show():
    """Show saved preferences."""
    async def _show():
        settings = get_settings()
        store = get_store(settings)
        await store.connect()
        try:
            prefs = await Preferences.load(store, namespace_for(settings.user_id if settings.authenticated else None))
        finally:
            await store.disconnect()

        table = Table(show_header=False, box=None)
        table.add_column("Preference", style="bold cyan")
        table.add_column("Value")
        for name, value in prefs.model_dump(mode="json").items():
            table.add_row(name, str(value))
        console.print(table)

    asyncio.run(_show())


@prefs_app.command("set")
def prefs_set(
    name: str = typer.Argument(..., help="Preference name"),
    value: str = typer.Argument(..., help="New value")
):
    """Change one preference."""
    async def _set():
        settings = get_settings()
        store = get_store(settings)
        namespace = namespace_for(settings.user_id if settings.authenticated else None)
        await store.connect()
        try:
            prefs = await Preferences.load(store, namespace)
            try:
                prefs = prefs.with_value(name, value)
            except KeyError:
                console.print(f"[red]Error: unknown preference '{name}'[/red]")
                raise typer.Exit(code=1)
            except PydanticValidationError as e:
                console.print(f"[red]Error: invalid value for {name}: {e.errors()[0]['msg']}[/red]")
                raise typer.Exit(code=1)
            await prefs.save(store, namespace)
        finally:
            await store.disconnect()
        console.print(f"[green]{name} = {getattr(prefs, name)}[/green]")

    asyncio.run(_set())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
