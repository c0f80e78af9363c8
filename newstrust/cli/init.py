"""Init command implementation."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, save_config
from ..db import close_connection_pool, init_database, validate_connection

console = Console()


async def _init_schema(db_config: dict) -> bool:
    try:
        if not await validate_connection(db_config):
            return False
        await init_database(db_config)
        return True
    finally:
        await close_connection_pool()


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "newstrust",
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("newstrust", "--db-name", help="Database name"),
    db_user: str = typer.Option("newstrust_user", "--db-user", help="Database user"),
) -> None:
    """Initialize News Trust configuration and database."""
    console.print(Panel.fit("News Trust - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "NEWSTRUST_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    console.print("\n[bold]Testing database connection and initializing schema...[/bold]")
    db_config = config.postgres.model_dump()
    try:
        connected = asyncio.run(_init_schema(db_config))
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    if not connected:
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export NEWSTRUST_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ News Trust initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export NEWSTRUST_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set LLM API key: [bold]export OPENAI_API_KEY=your_key[/bold]\n"
            f"3. Run: [bold]newstrust batch --limit 10[/bold]",
            style="green",
        )
    )
