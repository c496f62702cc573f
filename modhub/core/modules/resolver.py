from __future__ import annotations

"""
Dependency resolver.

Read-only over the descriptor store and the enabled-set registry. Dependency
edges are recomputed from the current descriptors on every call.
"""

from typing import List, Optional, Sequence, Set

from modhub.core.modules.descriptors import DescriptorStore
from modhub.core.modules.models import ANY_VERSION, DependencySpec
from modhub.core.modules.registry import EnabledRegistry
from modhub.core.modules.versions import satisfies


class DependencyResolver:
    def __init__(self, *, store: DescriptorStore, registry: EnabledRegistry):
        self.store = store
        self.registry = registry

    def _dependencies(self, name: str) -> List[DependencySpec]:
        desc = self.store.get_config(name)
        if desc is None:
            return []
        return list(desc.dependencies)

    def check_dependencies(self, name: str) -> List[str]:
        """
        Unmet dependencies of `name`, in declaration order:
        "<dep>" when the dependency is not enabled, "<dep> (<constraint>)" when
        it is enabled but its version does not satisfy the constraint.
        """
        missing: List[str] = []
        for dep in self._dependencies(name):
            if not self.registry.is_enabled(dep.name):
                missing.append(dep.name)
                continue
            if dep.constraint != ANY_VERSION and not self.satisfies_version(dep.name, dep.constraint):
                missing.append(f"{dep.name} ({dep.constraint})")
        return missing

    def satisfies_version(self, name: str, constraint: str) -> bool:
        desc = self.store.get_config(name)
        if desc is None:
            return False
        return satisfies(desc.version, constraint)

    def detect_circular_dependencies(self, name: str, visited: Sequence[str] = ()) -> Optional[List[str]]:
        """
        Depth-first walk from `name` following dependencies in declaration order.
        Returns the traversal path closed by the repeated module (e.g. [A, B, A])
        for the first cycle met, or None if no cycle is reachable.
        """
        return self._walk(name, list(visited), set())

    def _walk(self, name: str, path: List[str], acyclic: Set[str]) -> Optional[List[str]]:
        if name in path:
            return path + [name]
        if name in acyclic:
            return None
        deps = self._dependencies(name)
        if not deps:
            acyclic.add(name)
            return None
        path.append(name)
        try:
            for dep in deps:
                cycle = self._walk(dep.name, path, acyclic)
                if cycle:
                    return cycle
        finally:
            path.pop()
        # everything reachable from here is cycle-free, whatever the path that led here
        acyclic.add(name)
        return None

    def get_dependent_modules(self, name: str) -> List[str]:
        """Enabled modules that declare `name` as a dependency, regardless of version health."""
        dependents: List[str] = []
        for module in self.registry.get_enabled():
            if module == name:
                continue
            if name in {d.name for d in self._dependencies(module)}:
                dependents.append(module)
        return dependents
