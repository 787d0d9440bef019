from template_formula.validation import FormulaValidation, validate_formula


def test_empty_formula_is_valid():
    assert validate_formula("", []) == FormulaValidation(is_valid=True)


def test_known_references_are_valid():
    result = validate_formula("{brand.code}-{wattage}W {brand}", ["brand", "wattage"])
    assert result.is_valid
    assert result.error is None


def test_first_unknown_reference_is_reported():
    result = validate_formula("{brand}-{size}-{weight}", ["brand"])
    assert not result.is_valid
    assert result.error == "Unknown property: size"


def test_unknown_reference_reported_before_braces():
    result = validate_formula("{size} {", ["brand"])
    assert result.error == "Unknown property: size"


def test_unterminated_brace():
    result = validate_formula("{brand}-{wattage", ["brand", "wattage"])
    assert not result.is_valid
    assert result.error == "Unterminated '{' in formula"


def test_stray_closing_brace():
    result = validate_formula("brand}", ["brand"])
    assert not result.is_valid
    assert result.error == "Unmatched '}' at position 5"


def test_plain_text_is_valid():
    assert validate_formula("LED Panel", []).is_valid


def test_to_dict_shape():
    assert validate_formula("{x}", []).to_dict() == {"is_valid": False, "error": "Unknown property: x"}


def test_malformed_references_are_unknown():
    assert validate_formula("{Brand Name}-{wattage}", ["wattage"]).error == "Unknown property: Brand Name"
    assert validate_formula("{wattage}-{model-no}", ["wattage"]).error == "Unknown property: model-no"
    assert validate_formula("{wattage.unit}", ["wattage"]).error == "Unknown property: wattage.unit"
    assert validate_formula("SKU-{}", ["wattage"]).error == "Empty property reference"


def test_references_checked_in_order():
    result = validate_formula("{model-no} {size}", [])
    assert result.error == "Unknown property: model-no"
