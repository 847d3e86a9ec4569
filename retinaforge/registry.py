"""Component registry for RetinaForge model variants.

Cone-mosaic variants, outer-segment models and RGC models register
themselves under a string name and are instantiated by name from
configuration. Variant selection therefore happens exactly once, when the
component is built, instead of being re-checked inside simulation loops.

Example:
    >>> from retinaforge.registry import OUTER_SEGMENT_REGISTRY
    >>> OUTER_SEGMENT_REGISTRY.register("custom", MyOuterSegment)
    >>> os_model = OUTER_SEGMENT_REGISTRY.create("custom", time_step=1e-3)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type
import warnings


class ComponentRegistry:
    """Generic registry for component classes.

    Attributes:
        _registry: Dict mapping component name → (class, factory_func).
            When ``factory_func`` is None the class is instantiated directly.
    """

    def __init__(self, registry_name: str = "ComponentRegistry"):
        """Initialize empty registry.

        Args:
            registry_name: Name for error messages (e.g., "MOSAIC_REGISTRY").
        """
        self._registry: Dict[str, tuple[Type, Optional[Callable]]] = {}
        self._name = registry_name

    def register(
        self,
        name: str,
        cls: Type,
        factory_func: Optional[Callable] = None,
    ) -> None:
        """Register a component class.

        Re-registering the same class under the same name is a no-op.
        Registering a different class under an existing name warns and
        overwrites.

        Args:
            name: String identifier (e.g., "biophys").
            cls: Component class.
            factory_func: Optional factory called instead of ``cls(**kwargs)``.
        """
        if name in self._registry:
            existing_cls, _ = self._registry[name]
            if existing_cls is cls:
                return
            warnings.warn(
                f"{self._name}: Component '{name}' already registered with "
                f"{existing_cls.__name__}, overwriting with {cls.__name__}",
                UserWarning,
            )
        self._registry[name] = (cls, factory_func)

    def create(self, name: str, **kwargs) -> Any:
        """Create a component instance by name.

        Raises:
            KeyError: If name is not registered.
        """
        cls, factory_func = self._lookup(name)
        if factory_func is not None:
            return factory_func(**kwargs)
        if "config" in kwargs and len(kwargs) == 1 and hasattr(cls, "from_config"):
            return cls.from_config(kwargs["config"])
        return cls(**kwargs)

    def list_registered(self) -> List[str]:
        """Sorted list of registered names."""
        return sorted(self._registry.keys())

    def is_registered(self, name: str) -> bool:
        """Check if a component name is registered."""
        return name in self._registry

    def get_class(self, name: str) -> Type:
        """Get the registered class for a component name.

        Raises:
            KeyError: If name is not registered.
        """
        cls, _ = self._lookup(name)
        return cls

    def _lookup(self, name: str) -> tuple[Type, Optional[Callable]]:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry.keys()))
            raise KeyError(
                f"{self._name}: Component '{name}' not registered. "
                f"Available: {available}"
            )
        return self._registry[name]


# Global registries for each component type
MOSAIC_REGISTRY = ComponentRegistry("MOSAIC_REGISTRY")
OUTER_SEGMENT_REGISTRY = ComponentRegistry("OUTER_SEGMENT_REGISTRY")
RGC_MODEL_REGISTRY = ComponentRegistry("RGC_MODEL_REGISTRY")
