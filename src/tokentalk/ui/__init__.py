"""UI components for tokentalk - Rich console, themes, and tables."""

from tokentalk.ui.console import (
    console,
    create_table,
    print_error,
    print_success,
    print_warning,
)
from tokentalk.ui.theme import Symbols, TokentalkColors, tokentalk_theme

__all__ = [
    # Console basics
    "console",
    "create_table",
    "print_error",
    "print_success",
    "print_warning",
    # Theme
    "TokentalkColors",
    "tokentalk_theme",
    "Symbols",
]
