from __future__ import annotations
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from quillpub.core.layers import LayerNode
from quillpub.core.logging import get_logger

log = get_logger(__name__)

PathLike = Union[str, Path]

# Keys the model owns; everything else rides along in `extra`
_LAYER_KEYS = ("Name", "Type", "Visible")
_CHILDREN = "Children"
_IMPLEMENTATION = "Implementation"


class LoadError(Exception):
    """Project file missing, unreadable or not shaped like a Quill project."""


class SaveError(Exception):
    """Project could not be written (no project, no destination, I/O failure)."""


@dataclass(frozen=True)
class Project:
    version: int
    root: LayerNode
    sequence_extra: Mapping[str, Any] = field(default_factory=dict, hash=False, repr=False)
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False, repr=False)


# ──────────────────────────────────────────────────────────────────────────────
# Document → model
# ──────────────────────────────────────────────────────────────────────────────
def project_from_document(doc: Any) -> Project:
    if not isinstance(doc, dict):
        raise LoadError("Project document must be a JSON object")
    version = doc.get("Version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise LoadError("Project 'Version' must be an integer")
    sequence = doc.get("Sequence")
    if not isinstance(sequence, dict):
        raise LoadError("Project is missing its 'Sequence' object")
    if "RootLayer" not in sequence:
        raise LoadError("Project 'Sequence' has no 'RootLayer'")

    root = layer_from_document(sequence["RootLayer"], "RootLayer")
    return Project(
        version=version,
        root=root,
        sequence_extra={k: v for k, v in sequence.items() if k != "RootLayer"},
        extra={k: v for k, v in doc.items() if k not in ("Version", "Sequence")},
    )


def layer_from_document(data: Any, where: str) -> LayerNode:
    if not isinstance(data, dict):
        raise LoadError(f"{where}: layer must be an object")
    name, kind, visible = data.get("Name"), data.get("Type"), data.get("Visible")
    if not isinstance(name, str):
        raise LoadError(f"{where}: 'Name' must be a string")
    if not isinstance(kind, str):
        raise LoadError(f"{where}: 'Type' must be a string")
    if not isinstance(visible, bool):
        raise LoadError(f"{where}: 'Visible' must be a boolean")

    extra: Dict[str, Any] = {k: v for k, v in data.items() if k not in _LAYER_KEYS}
    children: List[LayerNode] = []
    impl = data.get(_IMPLEMENTATION)
    if impl is not None:
        if not isinstance(impl, dict):
            raise LoadError(f"{where}: 'Implementation' must be an object")
        raw_children = impl.get(_CHILDREN)
        if _CHILDREN in impl:
            if not isinstance(raw_children, list):
                raise LoadError(f"{where}: 'Children' must be a list")
            children = [
                layer_from_document(child, f"{where}/Children[{i}]")
                for i, child in enumerate(raw_children)
            ]
        # Keep the Children slot (value replaced on save) so key order survives
        extra[_IMPLEMENTATION] = {k: (None if k == _CHILDREN else v) for k, v in impl.items()}

    return LayerNode(name=name, kind=kind, visible=visible, children=tuple(children), extra=extra)


# ──────────────────────────────────────────────────────────────────────────────
# Model → document
# ──────────────────────────────────────────────────────────────────────────────
def project_to_document(project: Project) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"Version": project.version}
    sequence: Dict[str, Any] = dict(project.sequence_extra)
    sequence["RootLayer"] = layer_to_document(project.root)
    doc["Sequence"] = sequence
    doc.update(project.extra)
    return doc


def layer_to_document(node: LayerNode) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"Name": node.name, "Type": node.kind, "Visible": node.visible}
    for key, value in node.extra.items():
        if key == _IMPLEMENTATION and not isinstance(value, dict):
            # "Implementation": null on a leaf stays null
            doc[key] = value if not node.children else {_CHILDREN: [layer_to_document(c) for c in node.children]}
        elif key == _IMPLEMENTATION:
            impl = dict(value)
            if _CHILDREN in impl or node.children:
                impl[_CHILDREN] = [layer_to_document(c) for c in node.children]
            doc[key] = impl
        else:
            doc[key] = value
    if node.children and _IMPLEMENTATION not in doc:
        doc[_IMPLEMENTATION] = {_CHILDREN: [layer_to_document(c) for c in node.children]}
    return doc


# ──────────────────────────────────────────────────────────────────────────────
# File I/O
# ──────────────────────────────────────────────────────────────────────────────
def read_project(path: PathLike) -> Project:
    p = Path(path)
    log.info("Reading project %s", p)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as ex:
        raise LoadError(f"Cannot read project {p}: {ex.strerror or ex}") from ex
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as ex:
        raise LoadError(f"{p.name} is not valid JSON (line {ex.lineno}, column {ex.colno})") from ex
    return project_from_document(doc)


def write_project(project: Optional[Project], path: Optional[PathLike]) -> Path:
    if project is None:
        raise SaveError("No project is loaded")
    if not path:
        raise SaveError("No destination selected")
    p = Path(path)
    log.info("Writing project %s", p)
    try:
        text = json.dumps(project_to_document(project), indent=2)
    except (TypeError, ValueError) as ex:
        raise SaveError(f"Project cannot be encoded: {ex}") from ex
    try:
        p.write_text(text, encoding="utf-8")
    except OSError as ex:
        raise SaveError(f"Cannot write {p}: {ex.strerror or ex}") from ex
    return p
