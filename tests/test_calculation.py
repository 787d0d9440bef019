import pytest

from template_formula.calculation import ArithmeticEvaluator, calculate, to_number, validate_calculation
from template_formula.errors import CalculationError
from template_formula.properties import Property


def test_area_from_dimensions():
    properties = [Property("length", 600), Property("width", 600)]
    assert calculate("{length} * {width} / 1000000", properties) == 0.36

def test_result_rounded_to_two_places():
    assert calculate("{a} / {b}", [Property("a", 1), Property("b", 3)]) == 0.33

def test_values_are_read_as_numbers():
    properties = [Property("length", "1200mm"), Property("count", ["4", "9"]), Property("flag", True)]
    assert calculate("{length} + {count} + {flag}", properties) == 1205.0

def test_unknown_reference_gives_zero():
    assert calculate("{length} * 2", [Property("width", 3)]) == 0.0

def test_failures_give_zero():
    assert calculate("{a} / {b}", [Property("a", 1), Property("b", 0)]) == 0.0
    assert calculate("2 ** 1000", []) == 0.0
    assert calculate("__import__('os').getcwd()", []) == 0.0
    assert calculate("", []) == 0.0

def test_evaluator_rejects_names_and_calls():
    evaluator = ArithmeticEvaluator()
    assert evaluator.evaluate("-(2 + 3) * 4 % 7") == 1.0
    with pytest.raises(CalculationError):
        evaluator.evaluate("open('x')")
    with pytest.raises(CalculationError):
        evaluator.evaluate("a + 1")

def test_to_number():
    assert to_number("12.5 kg") == 12.5
    assert to_number("abc") == 0.0
    assert to_number([]) == 0.0
    assert to_number(False) == 0.0
    assert to_number(None) == 0.0

def test_validate_calculation():
    assert validate_calculation("{a} / 0", ["a"]).is_valid
    assert validate_calculation("{b} + 1", ["a"]).error == "Unknown property: b"
    result = validate_calculation("({a} + 2", ["a"])
    assert not result.is_valid
    assert result.error == "Invalid mathematical expression"
