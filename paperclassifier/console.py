"""Console UI for terminal output using Rich."""

from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from paperclassifier.config import LLMModel, LLMSettings
from paperclassifier.models.paper import Paper


def _mask(api_key: str) -> str:
    if not api_key:
        return "(not set)"
    return f"{api_key[:3]}…{api_key[-4:]}" if len(api_key) > 10 else "****"


class ConsoleUI:
    """Rich-based console UI for paper display and notifications."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize console."""
        self.console = console or Console()

    def success(self, message: str) -> None:
        """Print a success message in green."""
        self.console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        """Print a warning message in yellow."""
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print an error message in red."""
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def import_errors(self, message: str, errors: Iterable[str]) -> None:
        """Print an aggregated import error, one line per problem."""
        self.error(message)
        for line in errors:
            self.console.print(f"  • {escape(line)}")

    def exported(self, count: int, path: Path) -> None:
        self.console.print(
            f"\n[green]Done.[/green] Wrote [bold]{count}[/bold] paper(s) to {escape(str(path))}"
        )

    def display_settings(self, llm: LLMSettings, models: list[LLMModel]) -> None:
        """Show the persisted model settings and the known models."""
        self.console.print(f"[bold]Model:[/bold]   {llm.model}")
        self.console.print(f"[bold]API key:[/bold] {_mask(llm.api_key)}")
        if models:
            table = Table(title="Available models")
            table.add_column("ID")
            table.add_column("Name")
            table.add_column("Description", overflow="fold")
            for m in models:
                marker = " *" if m.id == llm.model else ""
                table.add_row(m.id + marker, m.name, m.description or "-")
            self.console.print(table)

    def display_papers(self, papers: Iterable[Paper], title: str = "Papers") -> None:
        """Display papers and their codings in a formatted table.

        Args:
            papers: Papers to display
            title: Table caption
        """
        papers = list(papers)
        table = Table(title=title)
        table.add_column("ID", justify="right")
        table.add_column("Title", overflow="fold")
        table.add_column("Include", justify="center")
        table.add_column("Reason", overflow="fold")
        table.add_column("Subject", overflow="fold")
        table.add_column("Design")
        table.add_column("Level", overflow="fold")
        table.add_column("Conf.", justify="right")

        for paper in papers:
            coding = paper.coding
            if coding is None:
                table.add_row(
                    escape(paper.display_id), escape(paper.title) or "-", "-", "", "", "", "", ""
                )
                continue
            include = "[green]yes[/green]" if coding.is_included else "[red]no[/red]"
            table.add_row(
                escape(paper.display_id),
                escape(paper.title) or "-",
                include,
                escape(", ".join(coding.reason_labels)),
                escape(", ".join(coding.subject or [])),
                escape(coding.design_label or ""),
                escape(", ".join(coding.level_labels)),
                f"{coding.confidence:g}" if coding.confidence is not None else "",
            )

        self.console.print(table)
        if not papers:
            self.console.print("No papers found.")
