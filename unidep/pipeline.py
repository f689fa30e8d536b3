"""Pipeline — scan a project, publish installed packages, resolve updates, publish again."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from unidep.engines.aggregator import UnifiedPackage, aggregate
from unidep.engines.dependency_scanner import ScanResult, scan_project
from unidep.engines.update_resolver import (
    DependencyUpdate,
    MavenPluginUpdate,
    PluginUpdate,
    UpdateResolver,
)

logger = structlog.get_logger("unidep.pipeline")

EVENT_INSTALLED = "installed"
EVENT_UPDATED = "updated"

Listener = Callable[[str, list[UnifiedPackage]], Awaitable[None] | None]


@dataclass
class PipelineSnapshot:
    scan: ScanResult
    packages: list[UnifiedPackage]
    updates: list[DependencyUpdate] = field(default_factory=list)
    plugin_updates: list[PluginUpdate] = field(default_factory=list)
    maven_plugin_updates: list[MavenPluginUpdate] = field(default_factory=list)


class ProjectPipeline:
    """Runs scan then resolve for one project and notifies listeners after each stage.

    Scanning and resolving are blocking and run in worker threads. A failing
    listener is logged and does not stop the pipeline or other listeners.
    Events logged during a refresh carry the bound ``project``.
    """

    def __init__(self, resolver: UpdateResolver, *, max_workers: int = 8) -> None:
        self._resolver = resolver
        self._max_workers = max_workers
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def refresh(self, root: Path) -> PipelineSnapshot:
        with structlog.contextvars.bound_contextvars(project=str(root)):
            scan = await asyncio.to_thread(scan_project, root, max_workers=self._max_workers)
            installed = aggregate(
                scan.dependencies, plugins=scan.plugins, maven_plugins=scan.maven_plugins
            )
            await self._publish(EVENT_INSTALLED, installed)

            updates, plugin_updates, maven_plugin_updates = await asyncio.to_thread(
                self._resolve, scan
            )
            packages = aggregate(
                scan.dependencies,
                updates,
                scan.plugins,
                plugin_updates,
                maven_plugins=scan.maven_plugins,
                maven_plugin_updates=maven_plugin_updates,
            )
            await self._publish(EVENT_UPDATED, packages)

            logger.info(
                "pipeline.refreshed",
                packages=len(packages),
                updates=len(updates) + len(plugin_updates) + len(maven_plugin_updates),
            )
        return PipelineSnapshot(
            scan=scan,
            packages=packages,
            updates=updates,
            plugin_updates=plugin_updates,
            maven_plugin_updates=maven_plugin_updates,
        )

    def _resolve(
        self, scan: ScanResult
    ) -> tuple[list[DependencyUpdate], list[PluginUpdate], list[MavenPluginUpdate]]:
        updates = self._resolver.check_for_updates(scan.dependencies, scan.repositories)
        plugin_updates = self._resolver.check_plugin_updates(scan.plugins)
        maven_plugin_updates = []
        if scan.maven_plugins:
            maven_plugin_updates = self._resolver.check_maven_plugin_updates(
                scan.maven_plugins, scan.repositories
            )
        return updates, plugin_updates, maven_plugin_updates

    async def _publish(self, event: str, packages: list[UnifiedPackage]) -> None:
        for listener in list(self._listeners):
            try:
                result: Any = listener(event, packages)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("pipeline.listener_error", event_name=event)
