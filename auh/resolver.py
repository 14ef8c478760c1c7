# auh/resolver.py
"""Pipeline selection for a package request."""

from __future__ import annotations

from auh.models import PipelineChoice


def resolve(probe_up: bool, explicit_mirror: bool) -> PipelineChoice:
    if explicit_mirror or not probe_up:
        return PipelineChoice.MIRROR
    return PipelineChoice.PRIMARY
