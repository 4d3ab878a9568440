"""Rich console setup and output helpers for tokentalk."""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tokentalk.ui.theme import Symbols, TokentalkColors, tokentalk_theme

# Main console instance with tokentalk theme
console = Console(theme=tokentalk_theme)

# Log output goes to stderr so it never mixes with command output
err_console = Console(theme=tokentalk_theme, stderr=True)


def print_error(message: str, title: str = "Error") -> None:
    """Print an error message in a styled panel."""
    console.print(
        Panel(
            f"[error]{Symbols.CROSS} {message}[/error]",
            title=f"[error]{title}[/error]",
            border_style=TokentalkColors.ERROR,
            box=box.ROUNDED,
        )
    )


def print_success(message: str, title: str = "Success") -> None:
    """Print a success message in a styled panel."""
    console.print(
        Panel(
            f"[success]{Symbols.CHECK} {message}[/success]",
            title=f"[success]{title}[/success]",
            border_style=TokentalkColors.SUCCESS,
            box=box.ROUNDED,
        )
    )


def print_warning(message: str, title: str = "Warning") -> None:
    """Print a warning message in a styled panel."""
    console.print(
        Panel(
            f"[warning]{Symbols.WARN} {message}[/warning]",
            title=f"[warning]{title}[/warning]",
            border_style=TokentalkColors.WARNING,
            box=box.ROUNDED,
        )
    )


def print_welcome() -> None:
    """Print the chat welcome banner."""
    console.print(
        Panel(
            "[token]tokentalk[/token]\n[muted]Say 'create token', 'list tokens', "
            "'get token number 3' or 'delete token number 3'[/muted]",
            border_style=TokentalkColors.TOKEN,
            box=box.DOUBLE,
        )
    )


def print_assistant(message: str, context: Optional[str] = None) -> None:
    """Print an assistant reply, with the continuation context dimmed below it."""
    console.print(f"[assistant]{Symbols.SPEAK} {message}[/assistant]")
    if context:
        console.print(f"[muted]{Symbols.ARROW} context: [context]{context}[/context][/muted]")


def create_table(title: str, columns: list[tuple[str, str]]) -> Table:
    """Create a styled table with the given columns.

    Args:
        title: Table title
        columns: List of (name, style) tuples for columns

    Returns:
        Configured Rich Table instance
    """
    table = Table(
        title=f"[primary]{title}[/primary]",
        box=box.ROUNDED,
        border_style=TokentalkColors.BORDER,
        header_style="table.header",
        show_lines=False,
    )
    for name, style in columns:
        table.add_column(name, style=style)
    return table
