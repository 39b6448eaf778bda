"""
Dependency resolution for declared plugins.

Plugins may list other plugins (by name) that must be installed first.
resolve_order() returns the declared set in an order where every plugin
comes after all of its dependencies, using Kahn's algorithm.

Plugins that become ready at the same time keep their declaration order,
so the same config always yields the same install order.
"""

import logging
from collections import deque

from revenant.lib.errors import DependencyCycleError, MissingDependencyError, ValidationError
from revenant.models.plugin import PluginSpec

logger = logging.getLogger(__name__)


def _unique(names: list[str]) -> list[str]:
    """Drop repeated names, keeping first occurrence order."""
    return list(dict.fromkeys(names))


def resolve_order(plugins: list[PluginSpec]) -> list[PluginSpec]:
    """Sort plugins so dependencies are installed before their dependents.

    Raises:
        MissingDependencyError: a dependency is not in the declared set.
        DependencyCycleError: the graph has a cycle; carries every plugin
            that could not be ordered.
    """
    by_name = {plugin.name: plugin for plugin in plugins}

    for plugin in plugins:
        for dep_name in plugin.dependencies:
            if dep_name not in by_name:
                raise MissingDependencyError(plugin.name, dep_name)

    # Edge dep -> dependent; in-degree counts the dependent's own dependencies
    in_degree: dict[str, int] = {plugin.name: 0 for plugin in plugins}
    dependents: dict[str, list[str]] = {plugin.name: [] for plugin in plugins}
    for plugin in plugins:
        for dep_name in _unique(plugin.dependencies):
            dependents[dep_name].append(plugin.name)
            in_degree[plugin.name] += 1

    queue = deque(plugin.name for plugin in plugins if in_degree[plugin.name] == 0)
    order: list[PluginSpec] = []

    while queue:
        current = queue.popleft()
        order.append(by_name[current])
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(plugins):
        resolved = {plugin.name for plugin in order}
        unresolved = [plugin.name for plugin in plugins if plugin.name not in resolved]
        raise DependencyCycleError(unresolved)

    logger.debug(f"Resolved install order: {', '.join(p.name for p in order)}")
    return order


def validate_dependencies(plugins: list[PluginSpec]) -> None:
    """Check references and cycles without using the resulting order."""
    resolve_order(plugins)


def select_with_dependencies(plugins: list[PluginSpec], names: list[str]) -> list[PluginSpec]:
    """The named plugins plus everything they transitively depend on.

    Result keeps declaration order.

    Raises:
        ValidationError: a name is not declared.
        MissingDependencyError: a dependency is not in the declared set.
    """
    by_name = {plugin.name: plugin for plugin in plugins}
    unknown = [name for name in names if name not in by_name]
    if unknown:
        raise ValidationError(f"Unknown plugin(s): {', '.join(unknown)}")

    selected: set[str] = set()
    pending = list(names)
    while pending:
        name = pending.pop()
        if name in selected:
            continue
        selected.add(name)
        for dep_name in by_name[name].dependencies:
            if dep_name not in by_name:
                raise MissingDependencyError(name, dep_name)
            pending.append(dep_name)

    return [plugin for plugin in plugins if plugin.name in selected]
