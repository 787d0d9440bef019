import logging
from pathlib import Path

import pytest

from template_formula import logging as tf_logging
from template_formula.templates import DeviceTemplate

REPO_ROOT = Path(__file__).resolve().parents[1]
LED_PANEL_PATH = REPO_ROOT / "templates" / "led_panel.yaml"


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger(tf_logging.LOGGER_NAME).handlers.clear()
    tf_logging._LOGGER = None


@pytest.fixture()
def led_panel_path() -> Path:
    return LED_PANEL_PATH


@pytest.fixture()
def led_panel() -> DeviceTemplate:
    return DeviceTemplate.load(LED_PANEL_PATH)
