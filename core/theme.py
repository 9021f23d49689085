"""Catppuccin Mocha color theme for Riptide."""

from rich.theme import Theme

# Catppuccin Mocha palette (subset in use)
MOCHA = {
    "flamingo": "#f2cdcd",
    "pink": "#f5c2e7",
    "mauve": "#cba6f7",
    "red": "#f38ba8",
    "peach": "#fab387",
    "yellow": "#f9e2af",
    "green": "#a6e3a1",
    "teal": "#94e2d5",
    "sky": "#89dceb",
    "sapphire": "#74c7ec",
    "blue": "#89b4fa",
    "lavender": "#b4befe",
    "text": "#cdd6f4",
    "subtext0": "#a6adc8",
    "overlay1": "#7f849c",
    "overlay0": "#6c7086",
    "surface2": "#585b70",
}

RIPTIDE_THEME = Theme({
    # Attempt outcomes
    "success": f"bold {MOCHA['green']}",
    "failure": MOCHA["red"],
    "error": MOCHA["peach"],
    "fatal": f"bold {MOCHA['red']}",

    # UI elements
    "heading": f"bold {MOCHA['lavender']}",
    "label": MOCHA["sapphire"],
    "value": MOCHA["text"],
    "warn": MOCHA["yellow"],
    "info": MOCHA["sky"],
    "dim": MOCHA["overlay0"],
    "attempt.index": MOCHA["mauve"],
    "attempt.pair": MOCHA["flamingo"],
    "hit.cred": MOCHA["teal"],

    # Table
    "table.header": f"bold {MOCHA['lavender']}",
    "table.user": MOCHA["flamingo"],
    "table.secret": MOCHA["pink"],
    "table.kind": MOCHA["sapphire"],
})
