"""
Module Registry - Catalog of invocable modules

Modules are grouped as category -> module -> function and addressed by the
dotted path ``category.module.function``. The registry is filled once at
startup from the built-in module list, then frozen; after that it only
answers lookups and searches.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from flowmate.server.errors import ModuleNotFound
from .module_interface import ModuleBase

logger = logging.getLogger("flowmate.registry")


@dataclass(frozen=True)
class ModuleDescriptor:
    """Identifies one invocable capability."""

    category: str
    module: str
    function: str
    description: str
    signature: str

    @property
    def path(self) -> str:
        return f"{self.category}.{self.module}.{self.function}"

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "description": self.description, "signature": self.signature}


class ModuleRegistry:
    """
    Registry for workflow modules.

    Note: Registry stores module CLASSES, not instances. Each get_module()
    call creates a fresh instance to avoid state leakage between uses.
    Declaration order is preserved; search scans in that order.
    """

    def __init__(self):
        # category -> module -> function -> descriptor, insertion ordered
        self._catalog: Dict[str, Dict[str, Dict[str, ModuleDescriptor]]] = {}
        self._module_classes: Dict[str, type] = {}
        self._frozen = False

    def register(self, module: ModuleBase) -> ModuleDescriptor:
        """
        Register a module class (extracted from instance).

        Args:
            module: Module instance (class is extracted for registration)

        Returns:
            The descriptor created for the module

        Raises:
            ValueError: If the id is malformed, already registered, or the
                registry is frozen
        """
        if self._frozen:
            raise ValueError("Module registry is frozen")

        module_id = module.module_id
        segments = module_id.split(".")
        if len(segments) != 3 or not all(segments):
            raise ValueError(f"Module id '{module_id}' must be category.module.function")
        if module_id in self._module_classes:
            raise ValueError(f"Module '{module_id}' is already registered")

        category, mod, function = segments
        descriptor = ModuleDescriptor(
            category=category,
            module=mod,
            function=function,
            description=module.description,
            signature=module.signature,
        )
        self._catalog.setdefault(category, {}).setdefault(mod, {})[function] = descriptor
        self._module_classes[module_id] = type(module)
        return descriptor

    def freeze(self) -> None:
        self._frozen = True

    def descriptors(self) -> List[ModuleDescriptor]:
        """All descriptors in declaration order."""
        return [
            descriptor
            for modules in self._catalog.values()
            for functions in modules.values()
            for descriptor in functions.values()
        ]

    def search(self, query: str, limit: int) -> List[Dict[str, str]]:
        """
        Case-insensitive substring search over path, description and signature.

        Results come back in declaration order as they are found; there is
        no relevance ranking.

        Args:
            query: Text to look for
            limit: Maximum number of results

        Returns:
            List of {path, description, signature}
        """
        needle = (query or "").lower()
        results = []
        if limit <= 0:
            return results
        for descriptor in self.descriptors():
            haystack = f"{descriptor.path} {descriptor.description} {descriptor.signature}".lower()
            if needle in haystack:
                results.append(descriptor.to_dict())
                if len(results) >= limit:
                    break
        return results

    def resolve(self, path: str) -> ModuleDescriptor:
        """
        Exact lookup by category.module.function.

        Raises:
            ModuleNotFound: Naming the first segment that does not exist
        """
        segments = (path or "").split(".")
        if len(segments) != 3:
            raise ModuleNotFound(
                path, "path", f"Module path '{path}' must be category.module.function"
            )
        category, mod, function = segments
        modules = self._catalog.get(category)
        if modules is None:
            raise ModuleNotFound(path, "category", f"Unknown category '{category}' in '{path}'")
        functions = modules.get(mod)
        if functions is None:
            raise ModuleNotFound(path, "module", f"Unknown module '{category}.{mod}' in '{path}'")
        descriptor = functions.get(function)
        if descriptor is None:
            raise ModuleNotFound(path, "function", f"Unknown function '{function}' in '{path}'")
        return descriptor

    def get_module(self, path: str) -> ModuleBase:
        """
        Get a fresh module instance by path.

        Raises:
            ModuleNotFound: If the path does not resolve
        """
        self.resolve(path)
        return self._module_classes[path]()

    def has_module(self, path: str) -> bool:
        return path in self._module_classes

    def catalog(self) -> List[Dict[str, Any]]:
        """Nested catalog: [{name, modules: [{name, functions: [...]}]}]."""
        return [
            {
                "name": category,
                "modules": [
                    {
                        "name": mod,
                        "functions": [d.to_dict() for d in functions.values()],
                    }
                    for mod, functions in modules.items()
                ],
            }
            for category, modules in self._catalog.items()
        ]


_registry: Optional[ModuleRegistry] = None
_registry_lock = threading.Lock()


def build_registry(modules: List[ModuleBase]) -> ModuleRegistry:
    """Register modules in the given order and freeze the result."""
    registry = ModuleRegistry()
    for module in modules:
        registry.register(module)
    registry.freeze()
    return registry


def get_registry() -> ModuleRegistry:
    """Process-wide registry of the built-in modules, built on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                from flowmate.server.modules import builtin_modules

                _registry = build_registry(builtin_modules())
                logger.info(f"[REGISTRY] {len(_registry.descriptors())} modules registered")
    return _registry
