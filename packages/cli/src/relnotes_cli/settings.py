"""Builds the validated Config that every command runs with."""

from __future__ import annotations

import click

from relnotes_core.config import Config, ConfigError


def build_config(ctx: click.Context, **overrides) -> Config:
    """Merge command-level overrides into the group's raw config and validate it.

    ConfigError becomes a ClickException so the CLI exits with status 1
    before any side effect.
    """
    raw = dict(ctx.obj["config"])
    raw.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Config.from_dict(raw)
    except ConfigError as e:
        raise click.ClickException(str(e))
