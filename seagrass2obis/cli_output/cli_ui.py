from rich import box
from rich.console import Console
from rich.table import Table
import pyfiglet

# One console for every stage's progress messages
console = Console()

RULE_WIDTH = 100


def print_separator(title: str | None = None) -> None:
    """Dim rule, with an optional bold title between two rules."""
    console.print("-" * RULE_WIDTH, style="dim")
    if title and title.strip():
        console.print(title.strip(), style="bold white")
        console.print("-" * RULE_WIDTH, style="dim")


def print_header() -> None:
    """Figlet banner plus a one-line description of the conversion."""
    console.print(pyfiglet.figlet_format("seagrass2obis", font="standard"), style="dark_green")
    console.print("Hakai seagrass density + habitat surveys -> OBIS Event / Occurrence / eMoF",
                  style="bold dark_green")
    print_separator()


def print_output_summary(tables: dict, paths: dict) -> None:
    """Row count and file location of every written table."""
    summary = Table(title="Output tables", box=box.SIMPLE, header_style="bold")
    summary.add_column("Table", style="dark_green", no_wrap=True)
    summary.add_column("Rows", justify="right")
    summary.add_column("File", style="dim")

    for name, df in tables.items():
        summary.add_row(name, f"{len(df):,}", str(paths.get(name, '')))

    console.print(summary)
