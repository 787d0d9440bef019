from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from template_formula.errors import TemplateConfigError

CONFIG_ENV_VAR = "TEMPLATE_FORMULA_CONFIG"
LOG_ENV_VAR = "TEMPLATE_FORMULA_LOG"

DEFAULT_PREVIEW_PLACEHOLDER = "Preview will appear as you fill properties..."
DEFAULT_EMPTY_FORMULA_MESSAGE = "Enter a formula to see preview"


@dataclass
class Settings:
    preview_placeholder: str = DEFAULT_PREVIEW_PLACEHOLDER
    empty_formula_message: str = DEFAULT_EMPTY_FORMULA_MESSAGE
    log_path: Optional[Path] = None
    templates_dir: Path = Path("templates")

    @staticmethod
    def load(path: Path) -> "Settings":
        data = load_yaml(path)
        log_path = data.get("log_path")
        return Settings(
            preview_placeholder=data.get("preview_placeholder", DEFAULT_PREVIEW_PLACEHOLDER),
            empty_formula_message=data.get("empty_formula_message", DEFAULT_EMPTY_FORMULA_MESSAGE),
            log_path=Path(log_path) if log_path else None,
            templates_dir=Path(data.get("templates_dir", "templates")),
        )


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise TemplateConfigError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TemplateConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_settings() -> Settings:
    config_path = os.getenv(CONFIG_ENV_VAR)
    settings = Settings.load(Path(config_path)) if config_path else Settings()
    log_override = os.getenv(LOG_ENV_VAR)
    if log_override:
        settings.log_path = Path(log_override)
    return settings
