from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import numpy as np
import trimesh
from trimesh.visual.material import PBRMaterial

from quillpub.core.logging import get_logger

log = get_logger(__name__)

HIGHLIGHT_RGBA = np.array([255, 255, 255, 204], dtype=np.uint8)  # white @ 0.8 alpha


@dataclass(eq=False)
class SceneObject:
    """
    One node of a loaded mesh scene. ``visible`` and ``material`` are the handles
    the layer list drives; ``geometry`` is set only on mesh-bearing nodes.
    Identity is by object, never by value.
    """
    name: str
    geometry: Optional[trimesh.Trimesh] = None
    visible: bool = True
    material: Any = None
    children: List["SceneObject"] = field(default_factory=list)

    @property
    def is_mesh(self) -> bool:
        return self.geometry is not None

    def add(self, child: "SceneObject") -> "SceneObject":
        self.children.append(child)
        return child

    def walk(self) -> Iterator["SceneObject"]:
        """Pre-order traversal including self."""
        stack = [self]
        while stack:
            obj = stack.pop()
            yield obj
            stack.extend(reversed(obj.children))


def make_highlight_material() -> PBRMaterial:
    """Flat, semi-transparent white used while a layer is hovered."""
    return PBRMaterial(
        name="quillpub_highlight",
        baseColorFactor=HIGHLIGHT_RGBA.copy(),
        metallicFactor=0.0,
        roughnessFactor=1.0,
        alphaMode="BLEND",
        doubleSided=True,
    )


def _material_of(geometry: Any) -> Any:
    visual = getattr(geometry, "visual", None)
    return getattr(visual, "material", None)


def scene_from_trimesh(scene: trimesh.Scene) -> SceneObject:
    """Mirror a trimesh scene graph as SceneObjects rooted at its base frame."""
    graph = scene.graph
    children: Dict[str, List[str]] = graph.transforms.children
    node_data = graph.transforms.node_data

    def build(node: str) -> SceneObject:
        geom_name = node_data.get(node, {}).get("geometry")
        geometry = scene.geometry.get(geom_name) if geom_name is not None else None
        if geometry is not None and not isinstance(geometry, trimesh.Trimesh):
            # Point clouds / paths have no surface material to swap
            geometry = None
        obj = SceneObject(name=str(node), geometry=geometry, material=_material_of(geometry))
        for child in children.get(node, []):
            obj.add(build(child))
        return obj

    return build(graph.base_frame)


def load_asset(path: Union[str, Path]) -> SceneObject:
    """Load any trimesh-readable mesh file as a SceneObject tree."""
    p = Path(path)
    log.info("Loading mesh asset %s", p)
    if not p.is_file():
        raise FileNotFoundError(f"Mesh file not found: {p}")
    scene = trimesh.load(str(p), force="scene")
    root = scene_from_trimesh(scene)
    log.info("Mesh asset %s: %d nodes, %d geometries", p.name, len(list(root.walk())), len(scene.geometry))
    return root


def asset_summary(root: SceneObject) -> Dict[str, Any]:
    """Object/mesh/vertex counts and the combined bounds of visible meshes."""
    objects = meshes = vertices = 0
    lows, highs = [], []
    stack = [(root, True)]
    while stack:
        obj, parent_visible = stack.pop()
        shown = parent_visible and obj.visible
        stack.extend((c, shown) for c in obj.children)
        objects += 1
        if not obj.is_mesh:
            continue
        meshes += 1
        vertices += len(obj.geometry.vertices)
        if shown and len(obj.geometry.vertices):
            b = np.asarray(obj.geometry.bounds, dtype=float)
            lows.append(b[0])
            highs.append(b[1])
    bounds = None
    if lows:
        bounds = np.array([np.min(lows, axis=0), np.max(highs, axis=0)])
    return {"objects": objects, "meshes": meshes, "vertices": vertices, "bounds": bounds}
