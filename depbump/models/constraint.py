"""
Version constraint model for depbump.

Parses Poetry-style constraint strings (``^1.2.3``, ``~1.2``, ``>=2.0,<3``,
``1.4.*``, ``^1.0 || ^2.0``) into clauses, translates each clause into a
PEP 440 :class:`~packaging.specifiers.SpecifierSet`, and exposes the base
version an upgrade is measured from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version
from packaging.specifiers import InvalidSpecifier, SpecifierSet

from depbump.constants import CANONICAL_OPERATOR
from depbump.exceptions import InvalidConstraintError
from depbump.utils.version_utils import to_version

_OPERATOR_GAP_RE = re.compile(r"(\^|~=|~|>=|<=|!=|==|>|<|=)\s+")
_CLAUSE_RE = re.compile(r"^(?P<op>\^|~=|~|>=|<=|!=|==|>|<|=)?(?P<version>[^\s,]+)$")

#: Operators whose version marks where the acceptable range starts.
LOWER_BOUND_OPERATORS = frozenset({"^", "~", "~=", ">=", ">", "==", "=", ""})

_WILDCARDS = frozenset({"*", "x", "X"})


@dataclass(frozen=True)
class Clause:
    """One comparator of a constraint, e.g. ``("^", "1.2.3")``."""

    operator: str
    version: str

    @property
    def is_wildcard(self) -> bool:
        return self.version in _WILDCARDS

    def to_specifier(self) -> str:
        """Translate this clause into PEP 440 specifier syntax."""
        if self.is_wildcard:
            return ""

        if self.version.endswith(".*"):
            operator = "!=" if self.operator == "!=" else "=="
            return f"{operator}{self.version.lstrip('vV')}"

        version = to_version(self.version)

        if self.operator == "^":
            return f">={version},<{_join(_caret_upper(version.release))}"
        if self.operator == "~":
            return f">={version},<{_join(_tilde_upper(version.release))}"
        if self.operator in ("", "="):
            return f"=={version}"
        return f"{self.operator}{version}"

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


class Constraint:
    """A parsed version constraint.

    The constraint is a disjunction (``||``) of conjunctions of clauses.
    Only the first conjunction determines the base version.

    Args:
        text: Original constraint text as written in the manifest.
        alternatives: Parsed clauses, one list per ``||`` alternative.

    Example::

        >>> c = Constraint.parse("^1.2.0")
        >>> c.base_version
        <Version('1.2.0')>
        >>> c.allows(Version("1.9.0")), c.allows(Version("2.0.0"))
        (True, False)
    """

    __slots__ = ("text", "alternatives", "specifiers")

    def __init__(self, text: str, alternatives: List[List[Clause]]) -> None:
        self.text = text
        self.alternatives = alternatives
        self.specifiers: List[SpecifierSet] = self._build_specifiers()

    @classmethod
    def parse(cls, text: str) -> "Constraint":
        """Parse ``text`` into a :class:`Constraint`.

        Raises:
            InvalidConstraintError: The text is empty or a clause is
                malformed.
        """
        stripped = text.strip() if isinstance(text, str) else ""
        if not stripped:
            raise InvalidConstraintError("Empty version constraint", constraint=text)

        alternatives: List[List[Clause]] = []
        for alternative in stripped.split("||"):
            normalized = _OPERATOR_GAP_RE.sub(r"\1", alternative.strip())
            tokens = [token for token in re.split(r"[,\s]+", normalized) if token]
            if not tokens:
                raise InvalidConstraintError(
                    f"Empty alternative in constraint '{stripped}'",
                    constraint=text,
                )
            alternatives.append([_parse_clause(token, text) for token in tokens])

        return cls(stripped, alternatives)

    def _build_specifiers(self) -> List[SpecifierSet]:
        """Translate every ``||`` alternative into a :class:`SpecifierSet`."""
        specifiers: List[SpecifierSet] = []
        for clauses in self.alternatives:
            parts = [clause.to_specifier() for clause in clauses]
            try:
                specifiers.append(SpecifierSet(",".join(p for p in parts if p)))
            except (InvalidSpecifier, InvalidVersion) as exc:
                raise InvalidConstraintError(
                    f"Invalid version constraint '{self.text}': {exc}",
                    constraint=self.text,
                ) from exc
        return specifiers

    @property
    def base_literal(self) -> Optional[str]:
        """Version text of the first lower-bound clause, as written."""
        for clause in self.alternatives[0]:
            if clause.operator in LOWER_BOUND_OPERATORS and not clause.is_wildcard:
                return clause.version.rstrip("*").rstrip(".")
        return None

    @property
    def base_version(self) -> Optional[Version]:
        """Parsed :attr:`base_literal`, or ``None`` for open-ended constraints."""
        literal = self.base_literal
        return to_version(literal) if literal else None

    def require_base_version(self, package: Optional[str] = None) -> Version:
        """Return :attr:`base_version` or raise if the constraint has none."""
        base = self.base_version
        if base is None:
            raise InvalidConstraintError(
                f"Constraint '{self.text}' has no base version to upgrade from",
                constraint=self.text,
                package_name=package,
            )
        return base

    def allows(self, version: Version) -> bool:
        """Return True if ``version`` satisfies this constraint.

        Pre-releases are matched like any other version; stability gating
        is the policy's job.
        """
        return any(spec.contains(version, prereleases=True) for spec in self.specifiers)

    def is_canonical_for(self, version: Union[str, Version]) -> bool:
        """Return True if the stored text already equals ``^<version>``."""
        return self.text == caret(version)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Constraint({self.text!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constraint):
            return NotImplemented
        return self.text == other.text

    def __hash__(self) -> int:
        return hash(self.text)


def caret(version: Union[str, Version]) -> str:
    """Render the canonical constraint ``^<version>`` without a leading ``v``."""
    text = str(version).strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    return f"{CANONICAL_OPERATOR}{text}"


def _parse_clause(token: str, original: str) -> Clause:
    match = _CLAUSE_RE.match(token)
    if not match:
        raise InvalidConstraintError(
            f"Malformed clause '{token}' in constraint '{original}'",
            constraint=original,
        )
    operator = match.group("op") or ""
    version = match.group("version")

    if version in _WILDCARDS and operator not in ("", "=", "=="):
        raise InvalidConstraintError(
            f"Wildcard cannot follow '{operator}' in constraint '{original}'",
            constraint=original,
        )

    if version not in _WILDCARDS and not version.endswith(".*"):
        try:
            to_version(version)
        except InvalidVersion as exc:
            raise InvalidConstraintError(
                f"Invalid version '{version}' in constraint '{original}'",
                constraint=original,
            ) from exc

    return Clause(operator=operator, version=version)


def _caret_upper(release: Tuple[int, ...]) -> Tuple[int, ...]:
    """Exclusive upper bound of a caret range: bump the first non-zero part."""
    for index, part in enumerate(release):
        if part != 0 or index == len(release) - 1:
            return release[:index] + (part + 1,)
    return (release[0] + 1,)


def _tilde_upper(release: Tuple[int, ...]) -> Tuple[int, ...]:
    """Exclusive upper bound of a tilde range: bump minor, or major if absent."""
    if len(release) >= 2:
        return (release[0], release[1] + 1)
    return (release[0] + 1,)


def _join(release: Tuple[int, ...]) -> str:
    return ".".join(str(part) for part in release)
