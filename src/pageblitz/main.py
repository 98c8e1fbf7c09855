"""
Pageblitz - CLI Entry Point.

Usage:
    pageblitz chat              Run the onboarding chat in the terminal
    pageblitz serve             Start the web API
    pageblitz health            Check configuration
    pageblitz --help            Show help
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="pageblitz",
    help="Pageblitz - Websites für kleine Unternehmen, personalisiert im Chat.",
    add_completion=False,
)
console = Console()


def _configure_logging() -> None:
    from pageblitz.config import settings

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_assistant(session, seen: int) -> int:
    """Print assistant messages appended since `seen`. Returns the new count."""
    from onboarding.conversation import Role

    messages = session.messages
    for message in messages[seen:]:
        if message.role == Role.ASSISTANT:
            console.print(Panel(Markdown(message.text), border_style="green", title="Pageblitz"))
    return len(messages)


def _parse_list(text: str) -> list[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


async def _answer_interactive(session, text: str):
    """Map a typed line onto the structured step actions."""
    from onboarding.content import SectionType
    from onboarding.state import AddOn, MenuCategory, MenuItem, ServiceItem, SubPage
    from onboarding.steps import ChatStep

    step = session.current_step

    if step == ChatStep.BRAND_COLOR:
        return session.set_brand_color(text)
    if step == ChatStep.BRAND_LOGO:
        return session.set_logo(font=text or "Montserrat")
    if step == ChatStep.SERVICES:
        if text.lower() in ("skip", "überspringen", "-"):
            return session.skip_services()
        if text.lower() in ("vorschlag", "suggest"):
            services = await session.suggest_services()
        else:
            services = [ServiceItem(title=t) for t in _parse_list(text)]
        return session.submit_services(services)
    if step == ChatStep.ADDONS:
        wanted = {AddOn(v) for v in _parse_list(text) if v in {a.value for a in AddOn}}
        return session.set_add_ons(wanted)
    if step in (ChatStep.MENU, ChatStep.PRICELIST):
        # "Kategorie: Gericht 9,50; Gericht 2 12,00"
        categories = []
        if ":" in text:
            name, items = text.split(":", 1)
            parsed = []
            for entry in items.split(";"):
                *words, amount = entry.split() or [""]
                parsed.append(MenuItem(name=" ".join(words) or amount, price=amount if words else ""))
            categories.append(MenuCategory(name=name.strip(), items=parsed))
        if step == ChatStep.MENU:
            return session.submit_menu(categories)
        return session.submit_pricelist(categories)
    if step == ChatStep.SUBPAGES:
        pages = [SubPage(id=f"page-{i}", name=n) for i, n in enumerate(_parse_list(text), 1)]
        return session.submit_sub_pages(pages)
    if step == ChatStep.HIDE_SECTIONS:
        for value in _parse_list(text):
            session.toggle_hidden_section(SectionType(value))
        return session.confirm_hidden_sections()
    if step == ChatStep.PREVIEW:
        return session.confirm_preview()
    return await session.handle_submit(text)


def _print_price(session) -> None:
    from onboarding.pricing import format_price, price_breakdown

    table = Table(title="Dein Paket")
    table.add_column("Position")
    table.add_column("Monatlich", justify="right")
    for line in price_breakdown(session.state, is_first_period=True):
        table.add_row(line.label, format_price(line.amount))
    table.add_row("[bold]Erster Monat[/bold]", f"[bold]{format_price(session.price(True))}[/bold]")
    table.add_row("Danach", format_price(session.price(False)))
    console.print(table)


async def _chat_loop(query: str | None) -> None:
    from pageblitz.config import settings
    from onboarding.api import build_session
    from onboarding.directory import DirectoryClient
    from onboarding.errors import OnboardingError
    from onboarding.forms import missing_for_checkout
    from onboarding.reservation import JsonFileStore, format_countdown, remaining
    from onboarding.steps import INTERACTIVE_STEPS, ChatStep

    facts = None
    if query:
        with Live(Spinner("dots", text="Suche Unternehmen..."), console=console, transient=True):
            facts = await DirectoryClient().lookup(query)
        if facts is None:
            console.print("[yellow]Kein Eintrag gefunden, wir starten ohne Vorbefüllung.[/yellow]")

    session = build_session(facts=facts)
    session.start()

    deadline = session.reservation(JsonFileStore(settings.reservation_store_path), hours=settings.reservation_hours)
    console.print(f"[dim]⏳ Deine Website ist noch {format_countdown(remaining(deadline))} für dich reserviert.[/dim]")
    seen = _print_assistant(session, 0)

    try:
        while session.current_step != ChatStep.CHECKOUT:
            replies = session.quick_replies()
            if replies:
                console.print("[dim]" + " | ".join(replies) + "[/dim]")

            text = console.input("\n[bold blue]Du:[/bold blue] ").strip()
            if text.lower() in ("exit", "quit", "q"):
                console.print("\n[dim]Bis bald! 👋[/dim]")
                return

            try:
                if session.current_step in INTERACTIVE_STEPS:
                    result = await _answer_interactive(session, text)
                else:
                    with Live(Spinner("dots", text="Denke nach..."), console=console, transient=True):
                        result = await session.handle_submit(text)
            except (OnboardingError, ValueError) as e:
                console.print(f"[red]{e}[/red]")
                continue

            if result.status in ("rejected", "error"):
                console.print(f"[red]{result.message}[/red]")
            elif result.status == "suggested":
                console.print(Panel(result.input_buffer or "", title="Vorschlag", border_style="cyan"))

            seen = _print_assistant(session, seen)

        _print_price(session)
        missing = missing_for_checkout(session.state)
        if missing:
            console.print(f"[dim]Für die Freischaltung fehlen noch: {', '.join(missing)}[/dim]")
    finally:
        await session.autosave.drain(timeout=5)
        session.close()


@app.command()
def chat(
    query: str = typer.Option(None, "--business", "-b", help="Maps link or business name to pre-fill from"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
) -> None:
    """Run the onboarding chat in the terminal."""
    from pageblitz.llm.prompt_logger import enable_prompt_logging, get_session_log_dir

    _configure_logging()
    if log_prompts:
        enable_prompt_logging(True)

    console.print(
        Panel.fit(
            "[bold green]Pageblitz Onboarding[/bold green]\n"
            "Wir personalisieren deine Website im Chat.\n\n"
            "[dim]Tippe 'exit' zum Beenden.[/dim]",
            title="Willkommen",
            border_style="green",
        )
    )

    try:
        asyncio.run(_chat_loop(query))
    except KeyboardInterrupt:
        console.print("\n\n[dim]Abgebrochen. Bis bald! 👋[/dim]")

    if log_prompts:
        log_dir = get_session_log_dir()
        if log_dir:
            console.print(f"\n[dim]📝 Prompts logged to: {log_dir}[/dim]")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
) -> None:
    """Start the web API."""
    import uvicorn

    _configure_logging()
    uvicorn.run("pageblitz.web.app:app", host=host, port=port)


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from pageblitz.config import get_settings

    console.print("\n[bold]Pageblitz Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.pageblitz_env}")
        console.print(f"   Log level: {settings.log_level}")

        if settings.openai_api_key.startswith("sk-"):
            console.print("✅ OpenAI API key configured")
        else:
            console.print("⚠️  OpenAI API key missing, AI suggestions disabled")

        if settings.supabase_url.startswith("https://") and settings.supabase_service_role_key:
            console.print("✅ Supabase configured")
        else:
            console.print("⚠️  Supabase not configured, autosave disabled")

        if settings.google_places_api_key:
            console.print("✅ Google Places API key configured")
        else:
            console.print("ℹ️  Directory lookup disabled")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from pageblitz import __version__

    console.print(f"Pageblitz version {__version__}")


if __name__ == "__main__":
    app()
