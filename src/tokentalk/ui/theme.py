"""Theme and color definitions for tokentalk."""

from dataclasses import dataclass

from rich.theme import Theme


@dataclass(frozen=True)
class TokentalkColors:
    """Color palette for tokentalk UI."""

    # Primary colors
    PRIMARY = "#61afef"
    SECONDARY = "#c678dd"

    # Status colors
    SUCCESS = "#98c379"
    WARNING = "#e5c07b"
    ERROR = "#e06c75"
    INFO = "#56b6c2"

    # Token specific
    TOKEN = "#00d4aa"

    # UI elements
    MUTED = "#5c6370"
    BORDER = "#3e4451"


# Rich theme for console styling
tokentalk_theme = Theme(
    {
        # Primary styles
        "primary": f"bold {TokentalkColors.PRIMARY}",
        "secondary": f"{TokentalkColors.SECONDARY}",
        # Status styles
        "success": f"bold {TokentalkColors.SUCCESS}",
        "warning": f"bold {TokentalkColors.WARNING}",
        "error": f"bold {TokentalkColors.ERROR}",
        "info": f"{TokentalkColors.INFO}",
        # Conversation styles
        "token": f"bold {TokentalkColors.TOKEN}",
        "assistant": f"{TokentalkColors.TOKEN}",
        "context": f"{TokentalkColors.SECONDARY}",
        # UI styles
        "muted": f"{TokentalkColors.MUTED}",
        "prompt": f"bold {TokentalkColors.PRIMARY}",
        # Table styles
        "table.header": f"bold {TokentalkColors.PRIMARY}",
        "table.border": f"{TokentalkColors.BORDER}",
    }
)


# Unicode symbols used in the UI
class Symbols:
    """Unicode symbols for UI elements."""

    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    WARN = "⚠"
    SPEAK = "💬"
