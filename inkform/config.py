"""
Editor configuration: tool defaults and behavioural limits.
"""
import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

from inkform.utils.resource_loader import get_config_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


@dataclass
class ToolSettings:
    """Style defaults applied to newly created objects."""
    # Text
    text_color: str = "#000000"
    font_size: float = 16.0
    font_family: str = "Arial"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_align: str = "left"

    # Strokes and shapes
    stroke_color: str = "#000000"
    stroke_width: float = 2.0
    shape_fill: str = "transparent"
    shape_opacity: float = 1.0

    # Markup
    whiteout_color: str = "#ffffff"
    highlight_color: str = "#fff59d"
    highlight_opacity: float = 0.55

    stamp_text: str = "APPROVED"


@dataclass
class EditorConfig:
    """Behavioural settings for an editing session."""
    history_limit: int = 50
    min_drag_size: float = 5.0
    min_zoom: float = 0.25
    max_zoom: float = 4.0
    producer: str = "Inkform"
    creator: str = "Inkform"
    audit_attachment_name: str = "signatures-audit.json"
    lock_filled_fields: bool = False
    tool_settings: ToolSettings = field(default_factory=ToolSettings)

    def clamp_zoom(self, scale: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, scale))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "EditorConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {"tool_settings"}
        kwargs = {k: v for k, v in data.items() if k in known}

        tool_data = data.get("tool_settings") or {}
        tool_known = {f.name for f in fields(ToolSettings)}
        tool_settings = ToolSettings(**{k: v for k, v in tool_data.items() if k in tool_known})

        return cls(tool_settings=tool_settings, **kwargs)


def load_config(path: Optional[str] = None) -> EditorConfig:
    """
    Load the editor configuration.

    Args:
        path: Optional explicit path; defaults to ``config.json`` in the
            per-user config directory

    Returns:
        The loaded config, or defaults when the file is missing or unreadable
    """
    config_path = Path(path) if path else get_config_dir() / CONFIG_FILENAME
    if not config_path.exists():
        return EditorConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return EditorConfig.from_dict(data)
    except (OSError, ValueError, TypeError):
        logger.warning("Could not read config %s, using defaults", config_path, exc_info=True)
        return EditorConfig()


def save_config(config: EditorConfig, path: Optional[str] = None) -> None:
    config_path = Path(path) if path else get_config_dir() / CONFIG_FILENAME
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
