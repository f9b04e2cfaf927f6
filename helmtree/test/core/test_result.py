"""Tests for helmtree.core.result module."""

import pytest

from helmtree.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(0) == 42

    def test_map(self) -> None:
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_flags(self) -> None:
        assert Ok(1).is_ok() is True
        assert Ok(1).is_err() is False

    def test_repr(self) -> None:
        assert repr(Ok("x")) == "Ok('x')"


class TestErr:
    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_is_noop(self) -> None:
        err: Err[str] = Err("boom")
        assert err.map(lambda x: x) is err

    def test_flags(self) -> None:
        assert Err(1).is_ok() is False
        assert Err(1).is_err() is True


class TestTypeGuards:
    def test_is_ok(self) -> None:
        result: Result[int, str] = Ok(1)
        assert is_ok(result)
        assert not is_err(result)

    def test_is_err(self) -> None:
        result: Result[int, str] = Err("no")
        assert is_err(result)
        assert not is_ok(result)

    def test_pattern_matching(self) -> None:
        result: Result[int, str] = Err("no")
        match result:
            case Ok(value):
                pytest.fail(f"unexpected value {value}")
            case Err(error):
                assert error == "no"
