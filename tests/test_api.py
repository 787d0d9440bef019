import shutil
from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient

from template_formula.api import app
from template_formula.config import Settings


@pytest.fixture()
def client(tmp_path: Path, monkeypatch, led_panel_path):
    shutil.copy(led_panel_path, tmp_path / "led_panel.yaml")
    monkeypatch.setattr(app.state, "settings", Settings(templates_dir=tmp_path))
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_validate_formula(client):
    response = client.post("/api/formulas/validate", json={"formula": "{a}-{b}", "properties": ["a"]})
    assert response.status_code == 200
    assert response.json() == {"is_valid": False, "error": "Unknown property: b"}


def test_evaluate_formula(client):
    payload = {
        "formula": "{brand.code}-{wattage}-{color.code}",
        "context": "sku",
        "properties": [
            {"name": "brand", "value": "Acme", "options": [{"code": "ACM", "label_en": "Acme"}]},
            {"name": "wattage", "value": 60},
            {"name": "color", "value": "Red", "options": [{"code": "RED", "label_en": "Red", "label_ar": "أحمر"}]},
        ],
    }
    response = client.post("/api/formulas/evaluate", json=payload)
    assert response.status_code == 200
    assert response.json() == {"result": "ACM-60-RED"}


def test_evaluate_rejects_unknown_context(client):
    response = client.post("/api/formulas/evaluate", json={"formula": "{a}", "context": "calculation"})
    assert response.status_code == 422


def test_preview(client):
    payload = {
        "formula": "{brand.code}",
        "context": "sku",
        "properties": [{"name": "brand", "type": "select", "options": [{"code": "ACM", "label_en": "Acme"}]}],
    }
    assert client.post("/api/formulas/preview", json=payload).json() == {"preview": "ACM"}
    assert client.post("/api/formulas/preview", json={"formula": ""}).json() == {
        "preview": "Enter a formula to see preview"
    }


def test_calculate(client):
    payload = {"formula": "{a} * {b}", "properties": [{"name": "a", "value": 2}, {"name": "b", "value": "3.5"}]}
    assert client.post("/api/formulas/calculate", json=payload).json() == {"value": 7.0}


def test_template_listing(client):
    assert client.get("/api/templates").json() == {"templates": ["led_panel"]}
    detail = client.get("/api/templates/led_panel").json()["template"]
    assert detail["name"] == "LED Panel"
    assert detail["fields"]["sku"]["generation_type"] == "dynamic"
    assert client.get("/api/templates/missing").status_code == 404


def test_template_validate(client):
    template = {
        "name": "Cable",
        "category": "Wiring",
        "properties": [{"name": "gauge", "type": "number"}],
        "fields": {"sku": {"generation_type": "dynamic", "formula": "{colour}"}},
    }
    body = client.post("/api/templates/validate", json={"template": template}).json()
    assert body["is_valid"] is False
    assert body["issues"] == [{"check_id": "field:sku", "message": "Unknown property: colour", "severity": "error"}]

    response = client.post("/api/templates/validate", json={"template": {"name": "Cable"}})
    assert response.status_code == 400


def test_template_generate(client, led_panel_path):
    template = yaml.safe_load(led_panel_path.read_text(encoding="utf-8"))
    payload = {"template": template, "values": {"brand": "Philips", "wattage": 40, "color": "CW"}}
    fields = client.post("/api/templates/generate", json=payload).json()["fields"]
    assert fields["sku"] == "LP-PHL-40W-CW"
    assert fields["description"] == "Philips 40W LED Panel, Cool White, "


def test_malformed_template_is_a_bad_request(client):
    template = {
        "name": "Cable",
        "category": "Wiring",
        "properties": [{"name": "color", "type": "select", "options": ["Red", "Blue"]}],
    }
    assert client.post("/api/templates/validate", json={"template": template}).status_code == 400
    template = {"name": "Cable", "category": "Wiring", "fields": {"sku": "{color}"}}
    assert client.post("/api/templates/generate", json={"template": template}).status_code == 400
