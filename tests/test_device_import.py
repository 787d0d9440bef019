from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from template_formula.device_import import (
    clean_value,
    generate_rows,
    read_device_rows,
    validate_device_rows,
    write_import_template,
)
from template_formula.errors import DeviceImportError
from template_formula.templates import identity_hash


def test_clean_value():
    assert clean_value(float("nan")) is None
    assert clean_value("  LP-01 ") == "LP-01"
    assert clean_value("   ") is None
    assert clean_value(3.0) == 3
    assert clean_value(np.int64(4)) == 4
    assert clean_value(np.float64(2.5)) == 2.5


def test_import_template_round_trip(tmp_path: Path, led_panel):
    path = write_import_template(led_panel, tmp_path / "out" / "led_panel.xlsx")
    headers = list(pd.read_excel(path, sheet_name="Devices", nrows=0).columns)
    assert headers[:2] == ["Name", "Category"]
    assert "Dynamic SKU" in headers
    assert "Color Temperature" in headers
    assert "brand" in headers

    rows = read_device_rows(path, led_panel)
    assert len(rows) == 1
    device = rows[0]
    assert device["name"] == "LED Panel Light"
    assert device["brand"] == "Philips"
    assert device["unit_price"] == 25.5
    assert device["dynamic_sku"] is True
    assert device["dynamic_short_description"] is False
    assert device["properties"]["brand"] == "Acme"
    assert device["properties"]["wattage"] == "10"
    assert device["properties"]["certifications"] == ["Value1", "Value2"]

    validation = validate_device_rows(rows, led_panel.identifier_property)
    assert validation.is_valid
    assert validation.warnings == []

    generated = generate_rows(led_panel, rows)[0]
    assert generated["row"] == 2
    assert generated["identity_hash"] == identity_hash("LED Panel Light", "Philips", "LP-001")
    fields = generated["fields"]
    assert fields["sku"] == "LED-10W-WW"
    assert fields["description"] == "10W LED Panel - Warm White Color Temperature"
    assert fields["short_description"] == "Compact LED Panel"
    assert fields["description_ar"] == "لوحة أكمي بقدرة 10 واط، أبيض دافئ"


def test_import_template_without_generation_columns(tmp_path: Path, led_panel):
    path = write_import_template(led_panel, tmp_path / "plain.xlsx", include_generation_columns=False)
    headers = list(pd.read_excel(path, nrows=0).columns)
    assert "Dynamic SKU" not in headers
    device = read_device_rows(path, led_panel)[0]
    fields = generate_rows(led_panel, [device])[0]["fields"]
    # Template formulas apply when the row carries no overrides.
    assert fields["sku"] == "LP-ACM-10W-WW"


def test_validation_messages():
    rows = [
        {"properties": {}, "unit_price": -1.0, "specifications": "power 20W", "dynamic_sku": True},
        {"name": "Panel", "category": "Lighting", "properties": {"item_code": "X1"}, "unit_price": 3},
    ]
    result = validate_device_rows(rows, "item_code")
    assert result.errors == [
        "Row 2: Device name is required",
        "Row 2: Category is required",
        "Row 2: Identifier property 'item_code' is required",
        "Row 2: Unit price must be a valid positive number",
    ]
    assert result.warnings == [
        "Row 2: Specifications is not valid JSON, will be stored as text",
        "Row 2: Dynamic SKU is enabled but SKU formula is empty",
    ]
    assert result.to_dict()["is_valid"] is False


def test_non_numeric_price_is_an_error():
    rows = [{"name": "Panel", "category": "Lighting", "properties": {}, "unit_price": "cheap"}]
    assert validate_device_rows(rows).errors == ["Row 2: Unit price must be a valid positive number"]


def test_unreadable_or_empty_workbook(tmp_path: Path):
    corrupt = tmp_path / "bad.xlsx"
    corrupt.write_bytes(b"PK\x03\x04garbage")
    with pytest.raises(DeviceImportError):
        read_device_rows(corrupt)

    with pytest.raises(DeviceImportError):
        read_device_rows(tmp_path / "missing.xlsx")

    empty = tmp_path / "empty.xlsx"
    pd.DataFrame(columns=["Name", "Category"]).to_excel(empty, index=False)
    with pytest.raises(DeviceImportError):
        read_device_rows(empty)


def test_unknown_columns_become_properties(tmp_path: Path):
    path = tmp_path / "devices.xlsx"
    pd.DataFrame([{"Device Name": "Panel", "Type": "Lighting", "Finish": "Matte"}]).to_excel(path, index=False)
    device = read_device_rows(path)[0]
    assert device["name"] == "Panel"
    assert device["category"] == "Lighting"
    assert device["properties"] == {"Finish": "Matte"}
