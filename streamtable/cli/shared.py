# ==============================================================================
# Shared CLI Utilities
# ==============================================================================
"""
Terminal styling and settings loading shared by the CLI commands.
"""

import typer
from pydantic import ValidationError

from streamtable.utils.config import Settings, get_settings


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    PLAY = "▶"
    STOP = "□"


# Module-level aliases for convenience
C, I = Colors, Icons


def load_settings() -> Settings:
    """
    Load settings, turning validation errors into a readable CLI failure.

    Raises:
        typer.Exit: If the environment does not describe a valid table
    """
    try:
        return get_settings()
    except ValidationError as e:
        print(f"\n  {C.BRIGHT_RED}{I.CROSS} Invalid configuration{C.RESET}")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "settings"
            print(f"  {C.DIM}{location}:{C.RESET} {error['msg']}")
        print()
        raise typer.Exit(1)
