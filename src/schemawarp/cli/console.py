"""
Shared Rich console and theme for the SchemaWarp CLI.
"""
from rich.console import Console
from rich.theme import Theme

custom_theme = Theme({
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "highlight": "bold blue",
    "muted": "dim",
    "count": "bold",
    "table.header": "bold blue",
    "path": "underline blue",
})

console = Console(theme=custom_theme, highlight=False)
