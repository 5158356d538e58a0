from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

# Fields a partial update may override
EDITABLE_FIELDS = frozenset({"name", "kind", "visible"})


@dataclass(frozen=True)
class LayerNode:
    """
    One layer of a project tree. Treated as immutable: edits build new nodes
    along the path to the edited layer and reuse every other subtree.

    ``name`` is the identity key (tree updates and scene lookups go by name).
    ``kind`` is the layer type tag from the project file (Group, Paint, Camera…),
    opaque to the core. ``extra`` carries document keys the model does not
    interpret so a save writes them back untouched.
    """
    name: str
    kind: str = "Group"
    visible: bool = True
    children: Tuple["LayerNode", ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False, repr=False)


def has_children(node: LayerNode) -> bool:
    return len(node.children) > 0


def child_count(node: LayerNode) -> int:
    return len(node.children)


def effective_visibility(node: LayerNode, parent_visible: bool = True) -> bool:
    """Visibility after folding in the ancestors; call top-down only."""
    return bool(parent_visible) and bool(node.visible)


def walk_effective(root: LayerNode) -> Iterator[Tuple[LayerNode, int, bool, bool]]:
    """
    Pre-order walk yielding (node, depth, parent_visible, effective_visible).
    Display order is preserved: children are visited first-child-first.
    """
    stack = [(root, 0, True)]
    while stack:
        node, depth, parent_visible = stack.pop()
        eff = effective_visibility(node, parent_visible)
        yield node, depth, parent_visible, eff
        for child in reversed(node.children):
            stack.append((child, depth + 1, eff))


def iter_layers(root: LayerNode) -> Iterator[LayerNode]:
    for node, _depth, _pv, _eff in walk_effective(root):
        yield node


def find_layer(root: LayerNode, name: str) -> Optional[LayerNode]:
    """First layer called ``name`` in depth-first, first-child-first order."""
    for node in iter_layers(root):
        if node.name == name:
            return node
    return None


def duplicate_names(root: LayerNode) -> Dict[str, int]:
    """Names that occur more than once, with their counts."""
    counts: Dict[str, int] = {}
    for node in iter_layers(root):
        counts[node.name] = counts.get(node.name, 0) + 1
    return {name: n for name, n in counts.items() if n > 1}


def update_layer(root: LayerNode, target: str, /, **changes: Any) -> LayerNode:
    """
    Return a tree where the first layer called ``target`` has ``changes`` applied.
    ``target`` is positional-only so ``name=`` can be passed as a change.

    Only the nodes on the root → target path are rebuilt; every other subtree is
    the same object as in ``root``. When no layer matches, ``root`` itself is
    returned. With duplicate names the first match in depth-first,
    first-child-first order wins.
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise TypeError(f"update_layer() got unexpected field(s): {', '.join(sorted(unknown))}")
    updated = _update(root, target, changes)
    return root if updated is None else updated


def _update(node: LayerNode, target: str, changes: Dict[str, Any]) -> Optional[LayerNode]:
    if node.name == target:
        return replace(node, **changes)
    for i, child in enumerate(node.children):
        new_child = _update(child, target, changes)
        if new_child is not None:
            children = node.children[:i] + (new_child,) + node.children[i + 1:]
            return replace(node, children=children)
    return None
