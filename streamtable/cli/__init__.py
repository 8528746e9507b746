# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for streamtable.

Commands are organized into separate modules:
- shared.py: Terminal styling and settings loading
- run.py: Foreground table runner
- config.py: Effective configuration display
- columns.py: Virtual column listing
"""

from streamtable.cli.shared import C, Colors, I, Icons, load_settings

__all__ = ["C", "Colors", "I", "Icons", "load_settings"]
