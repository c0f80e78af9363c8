"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .analyze import analyze_command, batch_command, stats_command
from .init import init_command

app = typer.Typer(
    name="newstrust",
    help="News Trust - calibrated AI trust profiles for news articles",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("analyze")(analyze_command)
app.command("batch")(batch_command)
app.command("stats")(stats_command)


if __name__ == "__main__":
    app()
