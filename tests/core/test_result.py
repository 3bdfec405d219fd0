"""Tests for the Ok/Err result type.

Tests verify that refused operations are reported as data:
- Ok: value access
- Err: message and error code, unwrap raises
"""

import pytest

from caseflow.core.result import Err, Ok


class TestOk:
    """Test Ok results."""

    def test_ok_result_creation(self):
        """Ok can be created with a value."""
        result = Ok("success value")
        assert result.is_ok() is True
        assert result.is_err() is False
        assert result.unwrap() == "success value"
        assert result.unwrap_or("other") == "success value"


class TestErr:
    """Test Err results."""

    def test_err_result_with_code(self):
        """Err carries message and code."""
        result = Err("plan is locked", code="PLAN_LOCKED")
        assert result.is_err() is True
        assert result.is_ok() is False
        assert result.error == "plan is locked"
        assert result.code == "PLAN_LOCKED"

    def test_code_defaults_to_none(self):
        assert Err("error").code is None

    def test_err_unwrap_raises_value_error(self):
        """Unwrapping an Err raises ValueError with the message."""
        with pytest.raises(ValueError, match="nope"):
            Err("nope").unwrap()

    def test_unwrap_or_returns_default(self):
        assert Err("x").unwrap_or(2) == 2

    def test_repr_includes_code(self):
        assert repr(Err("x", code="EMPTY_PLAN")) == "Err('x', code='EMPTY_PLAN')"


def test_equality():
    assert Ok(1) == Ok(1)
    assert Ok(1) != Ok(2)
    assert Err("x", code="A") == Err("x", code="A")
    assert Err("x", code="A") != Err("x", code="B")
    assert Ok("x") != Err("x")
