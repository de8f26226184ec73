from __future__ import annotations

from typing import List

import pytest
from packaging.version import Version

from depbump.exceptions import InvalidConstraintError
from depbump.models.stability import StabilityLevel
from depbump.models.upgrade import Policy
from depbump.core.policy import (
    ReservedNamespace,
    VersionPolicy,
    is_allowed_upgrade,
    is_reserved,
    select_latest,
)


def versions(*raw: str) -> List[Version]:
    return [Version(v) for v in raw]


@pytest.mark.unit
class TestReservedNames:
    """Tests for the reserved runtime entry and configured prefixes."""

    @pytest.mark.parametrize("name", ["python", "Python", "PYTHON"])
    def test_runtime_is_reserved(self, name: str) -> None:
        assert ReservedNamespace.RUNTIME.matches(name)
        assert is_reserved(name)

    @pytest.mark.parametrize("name", ["python-dateutil", "pythonnet", "cpython"])
    def test_runtime_match_is_exact(self, name: str) -> None:
        assert not is_reserved(name)

    def test_extra_prefixes(self) -> None:
        assert is_reserved("internal-tools", ["internal-"])
        assert is_reserved("Internal_Tools", ["internal-"])
        assert not is_reserved("tools-internal", ["internal-"])

    def test_empty_prefix_is_ignored(self) -> None:
        assert not is_reserved("requests", [""])

    def test_reserved_package_never_decided(self) -> None:
        decision = VersionPolicy().decide(
            "python", "^3.8", Version("3.12.0"), Policy(allow_major=True)
        )

        assert decision == (None, False)


@pytest.mark.unit
class TestIsAllowedUpgrade:
    @pytest.mark.parametrize(
        "current, candidate, policy, expected",
        [
            ("1.2.0", "1.5.0", Policy(), True),
            ("1.2.0", "1.2.7", Policy(), True),
            ("1.2.0", "2.0.0", Policy(), False),
            ("1.2.0", "2.0.0", Policy(allow_major=True), True),
            ("1.2.0", "1.5.0", Policy(allow_minor=False), False),
            ("1.2.0", "1.2.0", Policy(allow_major=True), False),
            ("1.2.0", "1.1.0", Policy(allow_major=True), False),
            ("1.2.0", "1.3.0rc1", Policy(), False),
            ("1.2.0", "1.3.0rc1", Policy(min_stability=StabilityLevel.RC), True),
            ("1.2.0b1", "1.2.0", Policy(allow_minor=False), True),
        ],
    )
    def test_is_allowed_upgrade(
        self, current: str, candidate: str, policy: Policy, expected: bool
    ) -> None:
        assert is_allowed_upgrade(Version(current), Version(candidate), policy) is expected


@pytest.mark.unit
class TestSelectLatest:
    """Tests for picking the best candidate inside the upgrade bounds."""

    AVAILABLE = versions("1.0.0", "1.2.0", "1.2.5", "1.5.0", "1.6.0b1", "2.0.0", "2.1.0rc1")

    def test_minor_and_patch(self) -> None:
        latest = select_latest(
            self.AVAILABLE, Version("1.2.0"), StabilityLevel.STABLE, False, True, True
        )

        assert latest == Version("1.5.0")

    def test_patch_only(self) -> None:
        latest = select_latest(
            self.AVAILABLE, Version("1.2.0"), StabilityLevel.STABLE, False, False, True
        )

        assert latest == Version("1.2.5")

    def test_major(self) -> None:
        latest = select_latest(
            self.AVAILABLE, Version("1.2.0"), StabilityLevel.STABLE, True, True, True
        )

        assert latest == Version("2.0.0")

    def test_prereleases_behind_stability_floor(self) -> None:
        latest = select_latest(
            self.AVAILABLE, Version("1.2.0"), StabilityLevel.BETA, True, True, True
        )

        assert latest == Version("2.1.0rc1")

    def test_nothing_newer_returns_best_older(self) -> None:
        latest = select_latest(
            versions("0.9.0", "1.0.0"), Version("1.2.0"), StabilityLevel.STABLE, False, True, True
        )

        assert latest == Version("1.0.0")

    def test_empty(self) -> None:
        assert select_latest([], Version("1.0"), StabilityLevel.STABLE, True, True, True) is None


@pytest.mark.unit
class TestVersionPolicyDecide:
    """Tests for VersionPolicy.decide."""

    def test_upgrade(self) -> None:
        decision = VersionPolicy().decide("requests", "^2.28.0", Version("2.31.0"), Policy())

        assert decision == ("^2.31.0", True)

    def test_major_not_allowed_falls_back(self) -> None:
        decision = VersionPolicy().decide("requests", "^1.2.0", Version("2.0.0"), Policy())

        assert decision == ("^1.2.0", False)

    def test_already_canonical_and_current(self) -> None:
        decision = VersionPolicy().decide("foo", "^1.5.0", Version("1.5.0"), Policy())

        assert decision == ("^1.5.0", False)

    def test_normalizes_non_canonical_constraint(self) -> None:
        decision = VersionPolicy().decide("foo", ">=1.2.0", None, Policy())

        assert decision == ("^1.2.0", True)

    def test_strips_leading_v(self) -> None:
        decision = VersionPolicy().decide("foo", "^v1.2.0", Version("1.2.0"), Policy())

        assert decision == ("^1.2.0", True)

    def test_installed_version_used_when_allowed(self) -> None:
        decision = VersionPolicy().decide(
            "foo", "~1.2", None, Policy(), installed=Version("1.2.8")
        )

        assert decision == ("^1.2.8", True)

    def test_installed_version_ignored_when_outside_constraint(self) -> None:
        decision = VersionPolicy().decide(
            "foo", "^1.2.0", None, Policy(), installed=Version("0.9.0")
        )

        assert decision == ("^1.2.0", False)

    def test_allow_list(self) -> None:
        policy = Policy(only_packages=frozenset({"bar"}))

        assert VersionPolicy().decide("foo", "^1.0", Version("1.5"), policy) == (None, False)
        assert VersionPolicy().decide("bar", "^1.0", Version("1.5"), policy) == ("^1.5", True)

    def test_reserved_prefix(self) -> None:
        decision = VersionPolicy(["corp-"]).decide(
            "corp-auth", "^1.0", Version("1.5"), Policy()
        )

        assert decision == (None, False)

    def test_constraint_without_base(self) -> None:
        with pytest.raises(InvalidConstraintError):
            VersionPolicy().decide("foo", "*", Version("1.0"), Policy())

    def test_idempotent_after_rewrite(self) -> None:
        version_policy = VersionPolicy()
        first, _ = version_policy.decide("foo", "^1.2.0", Version("1.5.0"), Policy())

        assert version_policy.decide("foo", first, Version("1.5.0"), Policy()) == (first, False)
