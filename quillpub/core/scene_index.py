from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from quillpub.core.asset import make_highlight_material
from quillpub.core.logging import get_logger

log = get_logger(__name__)


class Renderable(Protocol):
    name: str
    visible: bool
    material: Any
    children: List["Renderable"]

    @property
    def is_mesh(self) -> bool: ...

    def walk(self) -> Iterable["Renderable"]: ...


class SceneIndex:
    """
    Name → renderable lookup for one loaded mesh asset, plus the hover
    highlight protocol.

    Built once per asset and thrown away when the asset changes; object
    identities inside an asset are not stable across reloads. Every operation
    on an unknown name is a silent no-op: the asset and the layer tree load
    independently and may be briefly out of step.
    """

    def __init__(self, highlight_material: Any = None) -> None:
        self._root: Optional[Renderable] = None
        self._objects: Dict[str, Renderable] = {}
        # name of mesh object → material it had before its first highlight
        self._originals: Dict[str, Any] = {}
        self._highlight = highlight_material if highlight_material is not None else make_highlight_material()

    @classmethod
    def build(cls, root: Renderable, highlight_material: Any = None) -> "SceneIndex":
        """Index every named object under ``root`` (inclusive). Later duplicates win."""
        index = cls(highlight_material)
        index._root = root
        for obj in root.walk():
            if obj.name:
                index._objects[obj.name] = obj
        log.debug("Scene index built: %d named objects", len(index._objects))
        return index

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, name: object) -> bool:
        return name in self._objects

    def names(self) -> List[str]:
        return list(self._objects)

    @property
    def highlight_material(self) -> Any:
        return self._highlight

    def lookup(self, name: str) -> Optional[Renderable]:
        return self._objects.get(name)

    def set_visible(self, name: str, visible: bool) -> None:
        obj = self.lookup(name)
        if obj is not None:
            obj.visible = bool(visible)

    def highlight(self, name: str) -> None:
        def apply(mesh: Renderable) -> None:
            # First capture wins so repeated highlights never store the highlight itself
            if mesh.name not in self._originals:
                self._originals[mesh.name] = mesh.material
            mesh.material = self._highlight
        self._each_mesh(name, apply)

    def unhighlight(self, name: str) -> None:
        def restore(mesh: Renderable) -> None:
            if mesh.name in self._originals:
                mesh.material = self._originals[mesh.name]
        self._each_mesh(name, restore)

    def restore_all(self) -> None:
        """Put every captured original back; used before the index is dropped."""
        if self._root is None:
            return
        for mesh in self._root.walk():
            if mesh.is_mesh and mesh.name in self._originals:
                mesh.material = self._originals[mesh.name]

    def _each_mesh(self, name: str, fn: Callable[[Renderable], None]) -> None:
        obj = self.lookup(name)
        if obj is None:
            return
        for mesh in obj.walk():
            if mesh.is_mesh:
                fn(mesh)
