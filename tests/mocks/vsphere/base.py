"""
Base classes for vSphere mock objects
"""
from typing import Any, List


class MockVSphereObject:
    """
    Base class for all vSphere mock objects.

    Subclasses set ``_vim_type`` to the pyVmomi class they stand in for;
    ``__class__`` reports it so isinstance() checks and pyVmomi spec field
    type checks accept the mock, the same way ``Mock(spec=...)`` does.
    """

    _vim_type = None

    def __init__(self):
        self._properties = {}

    @property
    def __class__(self):
        return self._vim_type or type(self)

    def __getattr__(self, name: str) -> Any:
        """Dynamic property access"""
        if name.startswith('_'):
            raise AttributeError(name)
        if name in self._properties:
            return self._properties[name]
        # Return None for undefined attributes to avoid AttributeError
        return None

    def __setattr__(self, name: str, value: Any) -> None:
        """Property assignment tracking"""
        if name.startswith('_'):
            super().__setattr__(name, value)
        else:
            if not hasattr(self, '_properties'):
                super().__setattr__('_properties', {})
            self._properties[name] = value

    def __delattr__(self, name: str) -> None:
        """Handle attribute deletion for patching"""
        if name.startswith('_') or not hasattr(self, '_properties'):
            super().__delattr__(name)
        else:
            if name in self._properties:
                del self._properties[name]
            else:
                super().__delattr__(name)

    def inventory_children(self) -> List['MockVSphereObject']:
        """Entities one level below this one in the inventory tree"""
        return []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._properties.get('name')!r}>"
