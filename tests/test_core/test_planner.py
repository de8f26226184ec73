from __future__ import annotations

from textwrap import dedent
from typing import Dict, List, Optional

import pytest
from packaging.version import Version

from depbump.core.events import EventKind, ProgressEvent
from depbump.core.oracle import IndexFileOracle
from depbump.core.planner import UpgradePlanner
from depbump.core.policy import VersionPolicy
from depbump.models.manifest import Manifest
from depbump.models.upgrade import Policy, ProposedChange

PYPROJECT = dedent(
    """\
    [tool.poetry.dependencies]
    python = "^3.10"
    foo = "^1.2.0"
    bar = ">=2.0"
    baz = "^3.1.0"
    """
)

INDEX: Dict[str, List[str]] = {
    "python": ["3.12.0"],
    "foo": ["1.2.0", "1.5.0", "2.0.0"],
    "bar": ["2.0", "2.1"],
    "baz": ["3.1.0"],
}


def kinds(events: List[ProgressEvent]) -> List[EventKind]:
    return [event.kind for event in events]


@pytest.mark.unit
class TestUpgradePlanner:
    """Tests for UpgradePlanner.plan."""

    def test_plans_upgrades_and_applies_them(self) -> None:
        manifest = Manifest.loads(PYPROJECT)

        plan = UpgradePlanner().plan(manifest, Policy(), IndexFileOracle(INDEX))

        assert plan.has_updates is True
        assert plan.changes == [
            ProposedChange("foo", "^1.2.0", "^1.5.0"),
            ProposedChange("bar", ">=2.0", "^2.1"),
        ]
        assert manifest.get_constraint("foo") == "^1.5.0"
        assert manifest.get_constraint("bar") == "^2.1"
        assert plan.proposed() == {"foo": "^1.5.0", "bar": "^2.1"}

    def test_python_never_touched(self) -> None:
        manifest = Manifest.loads(PYPROJECT)

        plan = UpgradePlanner().plan(manifest, Policy(allow_major=True), IndexFileOracle(INDEX))

        assert "python" not in plan.proposed()
        assert manifest.get_constraint("python") == "^3.10"
        assert all(event.package != "python" for event in plan.events)

    def test_major_allowed(self) -> None:
        manifest = Manifest.loads(PYPROJECT)

        plan = UpgradePlanner().plan(manifest, Policy(allow_major=True), IndexFileOracle(INDEX))

        assert plan.proposed()["foo"] == "^2.0.0"

    def test_events(self) -> None:
        manifest = Manifest.loads(PYPROJECT)
        seen: List[ProgressEvent] = []

        plan = UpgradePlanner(on_event=seen.append).plan(manifest, Policy(), IndexFileOracle(INDEX))

        assert seen == plan.events
        assert kinds(plan.events) == [
            EventKind.FOUND_UPGRADE,
            EventKind.FOUND_UPGRADE,
            EventKind.SKIPPED,
        ]
        assert plan.events[0].message == "Found foo: ^1.2.0 -> 1.5.0"
        assert plan.events[2].message == "Skipping baz: ^3.1.0 already satisfies 3.1.0"

    def test_normalization_event(self) -> None:
        manifest = Manifest.loads('[tool.poetry.dependencies]\nfoo = "^v1.5.0"\n')

        plan = UpgradePlanner().plan(manifest, Policy(), IndexFileOracle({"foo": ["1.5.0"]}))

        assert plan.changes == [ProposedChange("foo", "^v1.5.0", "^1.5.0")]
        assert plan.events[0].kind is EventKind.NORMALIZED
        assert plan.events[0].message == "Normalizing foo: ^v1.5.0 -> ^1.5.0"

    def test_dry_run_leaves_manifest_alone(self) -> None:
        manifest = Manifest.loads(PYPROJECT)

        plan = UpgradePlanner().plan(manifest, Policy(dry_run=True), IndexFileOracle(INDEX))

        assert plan.has_updates is True
        assert len(plan.changes) == 2
        assert manifest.dumps() == PYPROJECT

    def test_allow_list(self) -> None:
        manifest = Manifest.loads(PYPROJECT)
        policy = Policy(only_packages=frozenset({"bar"}))

        plan = UpgradePlanner().plan(manifest, policy, IndexFileOracle(INDEX))

        assert plan.proposed() == {"bar": "^2.1"}
        assert manifest.get_constraint("foo") == "^1.2.0"

    def test_reserved_prefixes(self) -> None:
        manifest = Manifest.loads(PYPROJECT)

        plan = UpgradePlanner(VersionPolicy(["fo"])).plan(manifest, Policy(), IndexFileOracle(INDEX))

        assert "foo" not in plan.proposed()

    def test_lookup_error_is_reported_and_planning_continues(self) -> None:
        manifest = Manifest.loads(PYPROJECT)
        index = {k: v for k, v in INDEX.items() if k != "foo"}

        plan = UpgradePlanner().plan(manifest, Policy(), IndexFileOracle(index))

        assert plan.events[0].kind is EventKind.ERROR
        assert plan.events[0].package == "foo"
        assert plan.events[0].message.startswith("Error processing foo: ")
        assert plan.proposed() == {"bar": "^2.1"}

    def test_unexpected_oracle_failure_is_reported(self) -> None:
        manifest = Manifest.loads(PYPROJECT)
        oracle = _FailingOracle(IndexFileOracle(INDEX), failing="foo")

        plan = UpgradePlanner().plan(manifest, Policy(), oracle)

        assert plan.events[0].kind is EventKind.ERROR
        assert plan.events[0].message == "Error processing foo: registry timeout for foo"
        assert plan.proposed() == {"bar": "^2.1"}

    def test_no_updates(self) -> None:
        manifest = Manifest.loads('[tool.poetry.dependencies]\nbaz = "^3.1.0"\n')

        plan = UpgradePlanner().plan(manifest, Policy(), IndexFileOracle(INDEX))

        assert plan.has_updates is False
        assert plan.changes == []

    def test_idempotent(self) -> None:
        manifest = Manifest.loads(PYPROJECT)
        oracle = IndexFileOracle(INDEX)
        UpgradePlanner().plan(manifest, Policy(), oracle)

        second = Manifest.loads(manifest.dumps())
        plan = UpgradePlanner().plan(second, Policy(), oracle)

        assert plan.has_updates is False
        assert second.dumps() == manifest.dumps()

    def test_uses_locked_version(self) -> None:
        manifest = Manifest.loads('[tool.poetry.dependencies]\nfoo = "~1.2"\n')
        oracle = _FixedOracle(latest=None, current=Version("1.2.4"))

        plan = UpgradePlanner().plan(manifest, Policy(), oracle)

        assert plan.proposed() == {"foo": "^1.2.4"}


class _FixedOracle:
    def __init__(self, latest: Optional[Version], current: Optional[Version]) -> None:
        self._latest = latest
        self._current = current

    def latest(self, package, min_stability, current_constraint, allow_major, allow_minor, allow_patch):
        return self._latest

    def current_version(self, package, constraint):
        return self._current


class _FailingOracle:
    def __init__(self, inner: IndexFileOracle, failing: str) -> None:
        self._inner = inner
        self._failing = failing

    def latest(self, package, *args):
        if package == self._failing:
            raise LookupError(f"registry timeout for {package}")
        return self._inner.latest(package, *args)

    def current_version(self, package, constraint):
        return self._inner.current_version(package, constraint)
