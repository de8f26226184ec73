from __future__ import annotations

import pytest
from packaging.version import Version

from depbump.exceptions import InvalidConstraintError
from depbump.models.constraint import Clause, Constraint, caret


@pytest.mark.unit
class TestClause:
    """Tests for translating single clauses to PEP 440."""

    @pytest.mark.parametrize(
        "operator, version, expected",
        [
            ("^", "1.2.3", ">=1.2.3,<2"),
            ("^", "0.2.3", ">=0.2.3,<0.3"),
            ("^", "0.0.3", ">=0.0.3,<0.0.4"),
            ("^", "0.0", ">=0.0,<0.1"),
            ("^", "1", ">=1,<2"),
            ("~", "1.2.3", ">=1.2.3,<1.3"),
            ("~", "1", ">=1,<2"),
            ("", "1.2.3", "==1.2.3"),
            ("=", "1.2.3", "==1.2.3"),
            (">=", "2.0", ">=2.0"),
            ("~=", "2.1", "~=2.1"),
            ("==", "1.4.*", "==1.4.*"),
            ("!=", "1.4.*", "!=1.4.*"),
            ("", "*", ""),
        ],
    )
    def test_to_specifier(self, operator: str, version: str, expected: str) -> None:
        assert Clause(operator, version).to_specifier() == expected

    def test_str(self) -> None:
        assert str(Clause("^", "1.0")) == "^1.0"


@pytest.mark.unit
class TestConstraintParse:
    """Tests for Constraint.parse."""

    def test_caret(self) -> None:
        constraint = Constraint.parse("^1.2.0")

        assert constraint.alternatives == [[Clause("^", "1.2.0")]]
        assert constraint.base_version == Version("1.2.0")

    def test_strips_whitespace_between_operator_and_version(self) -> None:
        constraint = Constraint.parse(" >= 1.2, < 2.0 ")

        assert constraint.text == ">= 1.2, < 2.0"
        assert constraint.alternatives == [[Clause(">=", "1.2"), Clause("<", "2.0")]]

    def test_or_alternatives(self) -> None:
        constraint = Constraint.parse("^1.0 || ^2.0")

        assert len(constraint.alternatives) == 2
        assert constraint.base_version == Version("1.0")
        assert constraint.allows(Version("2.5"))
        assert not constraint.allows(Version("3.0"))

    @pytest.mark.parametrize("text", ["", "   ", "^", "^1.0 ||", ">=banana", "^*"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(InvalidConstraintError):
            Constraint.parse(text)


@pytest.mark.unit
class TestConstraintBase:
    """Tests for the base version of a constraint."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("^1.2.3", "1.2.3"),
            ("~1.2", "1.2"),
            (">=1.2,<2.0", "1.2"),
            ("1.4.*", "1.4"),
            ("==2.0.1", "2.0.1"),
            ("v1.2.0", "v1.2.0"),
        ],
    )
    def test_base_literal(self, text: str, expected: str) -> None:
        assert Constraint.parse(text).base_literal == expected

    @pytest.mark.parametrize("text", ["*", "<2.0", "!=1.0"])
    def test_no_base(self, text: str) -> None:
        constraint = Constraint.parse(text)

        assert constraint.base_version is None
        with pytest.raises(InvalidConstraintError, match="no base version") as exc_info:
            constraint.require_base_version("pkg")
        assert exc_info.value.package_name == "pkg"


@pytest.mark.unit
class TestConstraintAllows:
    """Tests for Constraint.allows."""

    @pytest.mark.parametrize(
        "text, version, expected",
        [
            ("^1.2.0", "1.9.9", True),
            ("^1.2.0", "2.0.0", False),
            ("^1.2.0", "1.1.0", False),
            ("~1.2", "1.2.9", True),
            ("~1.2", "1.3.0", False),
            ("*", "99.0", True),
            ("1.4.*", "1.4.7", True),
            ("^1.2.0", "1.5.0rc1", True),
        ],
    )
    def test_allows(self, text: str, version: str, expected: bool) -> None:
        assert Constraint.parse(text).allows(Version(version)) is expected


@pytest.mark.unit
class TestCanonicalForm:
    """Tests for caret rendering and canonical checks."""

    @pytest.mark.parametrize(
        "version, expected",
        [
            ("1.2.3", "^1.2.3"),
            ("v1.2.3", "^1.2.3"),
            ("V2.0", "^2.0"),
            (Version("1.5.0"), "^1.5.0"),
        ],
    )
    def test_caret(self, version: object, expected: str) -> None:
        assert caret(version) == expected

    def test_caret_round_trips(self) -> None:
        text = caret("v1.4.2")

        assert Constraint.parse(text).base_version == Version("1.4.2")
        assert caret(Constraint.parse(text).base_literal) == text

    def test_is_canonical_for(self) -> None:
        assert Constraint.parse("^1.2.0").is_canonical_for("1.2.0")
        assert not Constraint.parse("^v1.2.0").is_canonical_for("1.2.0")
        assert not Constraint.parse(">=1.2.0").is_canonical_for("1.2.0")

    def test_equality_uses_text(self) -> None:
        assert Constraint.parse("^1.0") == Constraint.parse(" ^1.0 ")
        assert Constraint.parse("^1.0") != Constraint.parse("^1.0.0")
        assert len({Constraint.parse("^1.0"), Constraint.parse("^1.0")}) == 1
