"""tokentalk - conversational manager for token substitutions."""

__app_name__ = "tokentalk"
__version__ = "0.1.0"
