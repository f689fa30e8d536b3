"""Mutator engine — compute minimal text edits for build files."""

from __future__ import annotations

from pathlib import Path

from unidep.engines.mutator.gradle import GradleDependencyModifier, GradlePluginModifier
from unidep.engines.mutator.maven import MavenDependencyModifier, MavenPluginModifier
from unidep.engines.mutator.text import apply_changes


def modifier_for(build_file: str | Path) -> GradleDependencyModifier | MavenDependencyModifier:
    """Pick the dependency modifier family for a build file by its name."""
    name = Path(build_file).name
    if name.endswith(".xml"):
        return MavenDependencyModifier()
    if name.endswith((".gradle", ".gradle.kts")):
        return GradleDependencyModifier()
    raise ValueError(f"unsupported build file: {name}")


__all__ = [
    "GradleDependencyModifier",
    "GradlePluginModifier",
    "MavenDependencyModifier",
    "MavenPluginModifier",
    "apply_changes",
    "modifier_for",
]
