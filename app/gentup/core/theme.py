"""Console colours for gentup.

Colours come from the bundled ``gentup/data/theme.toml``. gentup runs as
root, so a site-wide ``/etc/gentup/theme.toml`` is read next, then the
invoking user's ``~/.config/gentup/theme.toml``. Later files override
individual keys of earlier ones; unreadable files are ignored.
"""

import logging
import tomllib
from functools import lru_cache
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from gentup.core.paths import get_config_dir

logger = logging.getLogger(__name__)

THEME_FILENAME = "theme.toml"

# Rich style name -> (colour field, extra attributes)
STYLES: dict[str, tuple[str, str]] = {
    "text": ("text", ""),
    "muted": ("muted", ""),
    "dim": ("muted", ""),
    "header": ("header", ""),
    "bold_header": ("header", "bold"),
    "border": ("border", ""),
    "success": ("success", ""),
    "warning": ("warning", ""),
    "error": ("error", "bold"),
    "info": ("info", ""),
    "stage": ("stage", "bold"),
    "package": ("package", ""),
    "version_old": ("version_old", ""),
    "version_new": ("version_new", ""),
}


class ThemeColors(BaseModel):
    """Hex colours (#RGB or #RRGGBB) for each console role."""

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"
    stage: str = "#69B9A1"
    package: str = "#c1ff62"
    version_old: str = "#b2bec3"
    version_new: str = "#0e8ac8"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, value: object) -> str:
        """Accept only #RGB or #RRGGBB strings."""
        if not isinstance(value, str):
            msg = "colour must be a string"
            raise ValueError(msg)
        colour = value.strip()
        digits = colour.removeprefix("#")
        if digits == colour:
            msg = f"colour '{colour}' must start with '#'"
            raise ValueError(msg)
        if len(digits) not in (3, 6):
            msg = f"colour '{colour}' must be #RGB or #RRGGBB"
            raise ValueError(msg)
        if any(c not in "0123456789abcdefABCDEF" for c in digits):
            msg = f"colour '{colour}' is not a hex colour"
            raise ValueError(msg)
        return colour


def theme_paths() -> list[Path]:
    """Theme files in override order: bundled, site-wide, per-user."""
    bundled = Path(str(resources.files("gentup.data").joinpath(THEME_FILENAME)))
    return [
        bundled,
        get_config_dir() / THEME_FILENAME,
        Path.home() / ".config" / "gentup" / THEME_FILENAME,
    ]


def read_colors(path: Path) -> dict[str, str]:
    """Return the string entries of the ``[colors]`` table in ``path``.

    A missing, unreadable or malformed file yields an empty mapping.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}

    table = data.get("colors")
    if not isinstance(table, dict):
        if table is not None:
            logger.warning("Ignoring theme file %s: [colors] is not a table", path)
        return {}
    return {key: value for key, value in table.items() if isinstance(value, str)}


def load_colors(paths: list[Path] | None = None) -> ThemeColors:
    """Merge the theme files and validate the result.

    Falls back to the built-in colours if the merged theme is invalid.
    """
    merged: dict[str, str] = {}
    for path in paths if paths is not None else theme_paths():
        merged.update(read_colors(path))
    try:
        return ThemeColors.model_validate(merged)
    except ValidationError as e:
        logger.warning("Invalid theme, using built-in colours: %s", e.errors()[0]["msg"])
        return ThemeColors()


def build_theme(colors: ThemeColors) -> Theme:
    """Map the colours onto the Rich style names gentup prints with."""
    styles = {}
    for name, (field, attributes) in STYLES.items():
        colour = getattr(colors, field)
        styles[name] = f"{attributes} {colour}".strip()
    return Theme(styles)


@lru_cache(maxsize=1)
def get_theme() -> Theme:
    """The Rich theme for this process, loaded on first use."""
    return build_theme(load_colors())
