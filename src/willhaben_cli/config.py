"""
willhaben-cli Config Management

User preferences loaded from two sources:
1. ~/.willhaben/config.yaml (persistent)
2. Environment variables (override)

Priority: ENV > config.yaml. Invalid values fall back to defaults instead
of failing, so a hand-edited config never blocks startup.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, field_validator

# ═══════════════════════════════════════════════════════════════════════════
# Config Paths
# ═══════════════════════════════════════════════════════════════════════════


def willhaben_home() -> Path:
    """Base directory for config, database and logs. `WILLHABEN_HOME` overrides."""
    override = os.environ.get("WILLHABEN_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".willhaben"


def config_file() -> Path:
    return willhaben_home() / "config.yaml"


# ═══════════════════════════════════════════════════════════════════════════
# User preferences
# ═══════════════════════════════════════════════════════════════════════════

VALID_ASCII_WIDTHS: tuple = (80, 100, 120, "auto")
VALID_ASCII_CONTRASTS: tuple = ("low", "medium", "high", "rotate")

# Austrian Bundesländer, as used by the areaId search facet
LOCATIONS: dict[int, str] = {
    1: "Burgenland",
    2: "Kärnten",
    3: "Niederösterreich",
    4: "Oberösterreich",
    5: "Salzburg",
    6: "Steiermark",
    7: "Tirol",
    8: "Vorarlberg",
    900: "Wien",
}

_ENV_KEYS = {
    "WILLHABEN_COOKIES": "cookies",
    "WILLHABEN_ASCII_WIDTH": "ascii_width",
    "WILLHABEN_ASCII_CONTRAST": "ascii_contrast",
    "WILLHABEN_LOCATION": "preferred_location",
}


class UserConfig(BaseModel):
    """Validated preferences. Unknown or invalid values become defaults."""
    ascii_width: Union[Literal[80, 100, 120], Literal["auto"]] = "auto"
    ascii_contrast: Literal["low", "medium", "high", "rotate"] = "rotate"
    preferred_location: int | None = None
    cookies: str = ""

    @field_validator("ascii_width", mode="before")
    @classmethod
    def validate_width(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().isdigit():
            v = int(v.strip())
        return v if v in VALID_ASCII_WIDTHS else "auto"

    @field_validator("ascii_contrast", mode="before")
    @classmethod
    def validate_contrast(cls, v: Any) -> str:
        v = str(v).lower().strip() if v is not None else ""
        return v if v in VALID_ASCII_CONTRASTS else "rotate"

    @field_validator("preferred_location", mode="before")
    @classmethod
    def validate_location(cls, v: Any) -> int | None:
        try:
            v = int(v)
        except (TypeError, ValueError):
            return None
        return v if v in LOCATIONS else None

    @field_validator("cookies", mode="before")
    @classmethod
    def validate_cookies(cls, v: Any) -> str:
        return str(v).strip() if v else ""

    @property
    def location_name(self) -> str | None:
        if self.preferred_location is None:
            return None
        return LOCATIONS.get(self.preferred_location)


# ═══════════════════════════════════════════════════════════════════════════
# Config Loader
# ═══════════════════════════════════════════════════════════════════════════


class Config:
    """Unified configuration management."""

    def __init__(self, path: Path | None = None):
        self.path = path or config_file()
        self.data: dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load config from all sources (priority: ENV > config.yaml)."""
        if self.path.exists():
            try:
                with open(self.path) as f:
                    loaded = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                print(f"[!] Warning: Could not read {self.path}: {e}", file=sys.stderr)
                loaded = {}
            if isinstance(loaded, dict):
                self.data = loaded

        self._apply_env_overrides()

    def _apply_env_overrides(self):
        """Environment variables override config file."""
        for env_key, field in _ENV_KEYS.items():
            if env_key in os.environ:
                self.data[field] = os.environ[env_key]

    def get(self) -> UserConfig:
        """Current validated preferences."""
        known = {k: v for k, v in self.data.items() if k in UserConfig.model_fields}
        return UserConfig(**known)

    def set(self, **updates: Any) -> UserConfig:
        """Merge `updates`, persist, and return the validated result."""
        merged = self.get().model_dump()
        merged.update(updates)
        validated = UserConfig(**merged)
        self.data.update(validated.model_dump())
        self.save()
        return validated

    def save(self):
        """Save config to ~/.willhaben/config.yaml."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            # Cookies usually come from the environment, keep them out of the file
            persisted = {k: v for k, v in self.data.items() if k != "cookies" or "WILLHABEN_COOKIES" not in os.environ}
            with open(self.path, "w") as f:
                yaml.dump(persisted, f, default_flow_style=False, allow_unicode=True)
        except (OSError, PermissionError) as e:
            print(f"[!] Warning: Could not save config to {self.path}: {e}", file=sys.stderr)
            print("[i] Config will work for this session only.", file=sys.stderr)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════


def load_config() -> Config:
    """Load config from all sources."""
    return Config()


def next_in_cycle(options: tuple | list, current: Any) -> Any:
    """Value after `current` in `options`, wrapping around."""
    options = list(options)
    try:
        return options[(options.index(current) + 1) % len(options)]
    except ValueError:
        return options[0]
