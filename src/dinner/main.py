"""
Dinner, Decided - CLI Entry Point.

Usage:
    dinner serve             Run the web API
    dinner plan              Show the current meal plan
    dinner groceries         Show the current grocery list
    dinner reset             Reset the household to onboarding
    dinner health            Check configuration
    dinner --help            Show help
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="dinner",
    help="Dinner, Decided - weekly meal plans and grocery lists.",
    add_completion=False,
)
console = Console()


async def _services():
    from dinner.config import configure_logging, settings
    from dinner.db.memory import MemoryStore
    from dinner.db.seed import seed_demo_data
    from dinner.services import build_services

    configure_logging("WARNING")
    services = build_services()
    if settings.seed_demo_data and isinstance(services.store, MemoryStore):
        await seed_demo_data(services.store)
    return services


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
) -> None:
    """Run the web API with uvicorn."""
    import uvicorn

    from dinner.llm.prompt_logger import enable_prompt_logging

    if log_prompts:
        enable_prompt_logging(True)
        console.print("[dim]📝 Prompt logging enabled. Check prompt_logs/ after the session.[/dim]")

    uvicorn.run("dinner.web.app:app", host=host, port=port, reload=reload)


@app.command()
def plan() -> None:
    """Show the current meal plan."""
    from dinner.core.errors import DinnerError

    async def run():
        services = await _services()
        return await services.plans.get_current_plan()

    try:
        current = asyncio.run(run())
    except DinnerError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        if e.help_text:
            console.print(f"[dim]{e.help_text}[/dim]")
        raise typer.Exit(1)

    table = Table(title=f"{current.name} (plan {current.id}, v{current.version})")
    table.add_column("Id", style="dim")
    table.add_column("Meal", style="bold")
    table.add_column("Category")
    table.add_column("Prep", justify="right")
    for meal in current.meals:
        prep = f"{meal.prep_time} min" if meal.prep_time else "-"
        table.add_row(meal.id, meal.name, meal.category or "-", prep)
    console.print(table)


@app.command()
def groceries(
    organized: bool = typer.Option(False, "--organized", "-o", help="Regroup items by store department"),
) -> None:
    """Show the current grocery list."""
    from dinner.core.departments import organize_by_department
    from dinner.core.errors import DinnerError

    async def run():
        services = await _services()
        return await services.plans.get_current_grocery_list()

    try:
        grocery_list = asyncio.run(run())
    except DinnerError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        raise typer.Exit(1)

    sections = organize_by_department(grocery_list.all_items()) if organized else grocery_list.sections
    if not sections:
        console.print("[dim]The grocery list is empty.[/dim]")
        return

    for section in sections:
        console.print(f"\n[bold blue]{section.name}[/bold blue]")
        for item in section.items:
            mark = "✅" if item.checked else "•"
            quantity = f" [dim]({item.quantity})[/dim]" if item.quantity else ""
            console.print(f"  {mark} {item.name}{quantity}")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Reset the household profile and chat history."""
    if not yes:
        typer.confirm("This erases your household profile and chat history. Continue?", abort=True)

    async def run():
        services = await _services()
        return await services.reset.reset_household()

    result = asyncio.run(run())
    console.print(f"[green]Household {result.household.id} reset to onboarding.[/green]")


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from dinner.config import get_settings

    console.print("\n[bold]Dinner, Decided Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.dinner_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Store: {settings.store_backend}")

        if settings.openai_api_key and settings.openai_api_key.startswith("sk-"):
            console.print("✅ OpenAI API key configured")
        elif settings.openai_api_key:
            console.print("⚠️  OpenAI API key may be invalid")
        else:
            console.print("ℹ️  No OpenAI API key, running with the demo meal generator")

        if settings.store_backend == "supabase":
            if settings.supabase_url and settings.supabase_url.startswith("https://") and settings.supabase_anon_key:
                console.print("✅ Supabase configured")
            else:
                console.print("❌ Supabase URL or key missing")
                raise typer.Exit(1)

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from dinner import __version__

    console.print(f"Dinner, Decided version {__version__}")


if __name__ == "__main__":
    app()
