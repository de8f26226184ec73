from __future__ import annotations

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from depbump.config import DepBumpConfig
from depbump.context import DepBumpContext, pass_context


@pytest.mark.unit
class TestDepBumpContext:
    """Tests for DepBumpContext."""

    def test_default_initialization(self) -> None:
        ctx = DepBumpContext()

        assert ctx.config_path is None
        assert ctx.verbose == 0
        assert ctx.color is True
        assert isinstance(ctx.config, DepBumpConfig)
        assert ctx.config.source_path is None

    def test_instances_are_independent(self) -> None:
        ctx1 = DepBumpContext()
        ctx2 = DepBumpContext()

        ctx1.verbose = 2
        ctx1.config.reserved_prefixes.append("internal-")

        assert ctx2.verbose == 0
        assert ctx2.config.reserved_prefixes == []

    def test_attributes_can_be_set(self) -> None:
        ctx = DepBumpContext()
        config = DepBumpConfig(allow_major=True)

        ctx.config_path = Path("/tmp/depbump.toml")
        ctx.color = False
        ctx.config = config

        assert ctx.config_path == Path("/tmp/depbump.toml")
        assert ctx.color is False
        assert ctx.config is config

    def test_slots_reject_unknown_attributes(self) -> None:
        ctx = DepBumpContext()

        with pytest.raises(AttributeError):
            ctx.unknown = True  # type: ignore[attr-defined]


@pytest.mark.unit
class TestPassContext:
    """Tests for the pass_context decorator."""

    def test_creates_context_when_missing(self) -> None:
        seen = []

        @click.command()
        @pass_context
        def command(ctx: DepBumpContext) -> None:
            seen.append(ctx)

        result = CliRunner().invoke(command, [])

        assert result.exit_code == 0
        assert len(seen) == 1
        assert isinstance(seen[0], DepBumpContext)

    def test_reuses_existing_context(self) -> None:
        existing = DepBumpContext()
        existing.verbose = 1
        seen = []

        @click.command()
        @pass_context
        def command(ctx: DepBumpContext) -> None:
            seen.append(ctx)

        result = CliRunner().invoke(command, [], obj=existing)

        assert result.exit_code == 0
        assert seen == [existing]
