from __future__ import annotations
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from app_config import CACHE_DIR, DEFAULT_EXPORTER_PATH, MESH_EXTS
from quillpub.qt import QtCore
from quillpub.core.asset import SceneObject, load_asset
from quillpub.core.exporter import ExportError, ExportFormat, ExporterCommand, export_project
from quillpub.core.layers import duplicate_names, iter_layers, update_layer
from quillpub.core.logging import get_logger
from quillpub.core.project import Project, read_project, write_project
from quillpub.core.scene_index import SceneIndex
from quillpub.core.tasks import Task

PathLike = Union[str, Path]


class SessionState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    EXPORTING = "exporting"


def find_sibling_mesh(project_path: PathLike) -> Optional[Path]:
    """Mesh next to the project named after the file or its folder (Quill saves Quill.json)."""
    p = Path(project_path)
    for stem in (p.stem, p.parent.name):
        for ext in MESH_EXTS:
            candidate = p.parent / f"{stem}{ext}"
            if candidate.is_file():
                return candidate
    return None


class ProjectSession(QtCore.QObject):
    """
    Owns the loaded project and the scene index for its mesh.

    Loads, mesh loads and exports run as background Tasks; their completions
    come back through queued signals. Each load bumps a generation counter and a
    completion carrying an older token is dropped, so a superseded load can never
    bring stale state back. Edits are synchronous and only touch the tree and,
    for visibility, the matching renderable.
    """
    stateChanged = QtCore.Signal(str)
    projectChanged = QtCore.Signal(object)           # Project | None
    sceneIndexChanged = QtCore.Signal(object)        # SceneIndex | None
    layerUpdated = QtCore.Signal(str, object)        # (layer name after edit, changes)
    loadFailed = QtCore.Signal(str)
    assetFailed = QtCore.Signal(str)
    projectSaved = QtCore.Signal(str)
    exportFinished = QtCore.Signal(str)
    exportFailed = QtCore.Signal(str)

    def __init__(
        self,
        exporter: ExporterCommand = DEFAULT_EXPORTER_PATH,
        threaded: bool = True,
        cache_dir: PathLike = CACHE_DIR,
        parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._log = get_logger(__name__)
        self.exporter = exporter
        self._threaded = threaded
        self._cache_dir = Path(cache_dir)

        self._state = SessionState.EMPTY
        self._project: Optional[Project] = None
        self._project_path: Optional[Path] = None
        self._dirty = False

        self._scene_index: Optional[SceneIndex] = None
        self._asset_root: Optional[SceneObject] = None
        self._asset_path: Optional[Path] = None
        # layer name → scene object name, for layers renamed since the index was built
        self._scene_keys: Dict[str, str] = {}

        self._generation = 0
        self._asset_generation = 0
        self._export_token = 0
        self._export_running = False
        self._loading_path: Optional[Path] = None
        self._loading_asset: Optional[Path] = None
        self._tasks: Dict[Tuple[str, int], Task] = {}

    # ──────────────────────────────────────────────────────────────────────────
    # Read-only state
    # ──────────────────────────────────────────────────────────────────────────
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def project(self) -> Optional[Project]:
        return self._project

    @property
    def project_path(self) -> Optional[Path]:
        return self._project_path

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def scene_index(self) -> Optional[SceneIndex]:
        return self._scene_index

    @property
    def asset_root(self) -> Optional[SceneObject]:
        return self._asset_root

    @property
    def asset_path(self) -> Optional[Path]:
        return self._asset_path

    @property
    def generation(self) -> int:
        return self._generation

    def scene_key(self, layer_name: str) -> str:
        """Scene object name for a layer; an alias that misses the index yields to the current name."""
        key = self._scene_keys.get(layer_name, layer_name)
        index = self._scene_index
        if key != layer_name and index is not None and key not in index and layer_name in index:
            return layer_name
        return key

    # ──────────────────────────────────────────────────────────────────────────
    # Loading
    # ──────────────────────────────────────────────────────────────────────────
    def load_project(self, path: PathLike, asset_path: Optional[PathLike] = None) -> int:
        """Start loading ``path``; supersedes any load still in flight."""
        self._generation += 1
        token = self._generation
        self._log.info("Loading project #%d: %s", token, path)

        self._discard_scene_index()
        self._project = None
        self._project_path = None
        self._dirty = False
        self._scene_keys.clear()
        self._loading_path = Path(path)
        self._loading_asset = Path(asset_path) if asset_path else None
        self._set_state(SessionState.LOADING)
        self.projectChanged.emit(None)

        task = Task(token, read_project, self._loading_path, name="ProjectLoad")
        self._start(("project", token), task, self._on_project_loaded, self._on_project_failed)
        return token

    def load_asset(self, path: PathLike) -> int:
        """Start loading a mesh; the current index is dropped until it arrives."""
        self._asset_generation += 1
        token = self._asset_generation
        self._discard_scene_index()
        self._asset_path = Path(path)
        task = Task(token, load_asset, self._asset_path, name="AssetLoad")
        self._start(("asset", token), task, self._on_asset_loaded, self._on_asset_failed)
        return token

    @QtCore.Slot(int, object)
    def _on_project_loaded(self, token: int, project: Project) -> None:
        self._tasks.pop(("project", token), None)
        if token != self._generation:
            self._log.debug("Ignoring superseded project load #%d (current #%d)", token, self._generation)
            return

        self._project = project
        self._project_path = self._loading_path
        self._dirty = False
        dups = duplicate_names(project.root)
        if dups:
            self._log.warning("Layer names are not unique, edits go to the first match: %s", dups)
        self._log.info("Project #%d loaded: version %s, root %r", token, project.version, project.root.name)
        self._set_state(SessionState.LOADED)
        self.projectChanged.emit(project)

        asset = self._loading_asset or find_sibling_mesh(self._project_path)
        if asset is not None:
            self.load_asset(asset)
        elif self._asset_root is not None:
            self._install_index(self._asset_root)

    @QtCore.Slot(int, str)
    def _on_project_failed(self, token: int, message: str) -> None:
        self._tasks.pop(("project", token), None)
        if token != self._generation:
            self._log.debug("Ignoring failure of superseded project load #%d", token)
            return
        self._log.error("Project load failed: %s", message)
        self._project = None
        self._project_path = None
        self._set_state(SessionState.EMPTY)
        self.loadFailed.emit(message)

    @QtCore.Slot(int, object)
    def _on_asset_loaded(self, token: int, root: SceneObject) -> None:
        self._tasks.pop(("asset", token), None)
        if token != self._asset_generation:
            self._log.debug("Ignoring superseded mesh load #%d", token)
            return
        self._asset_root = root
        # A project load in flight installs the index itself once the tree is known
        if self._state != SessionState.LOADING:
            self._install_index(root)

    @QtCore.Slot(int, str)
    def _on_asset_failed(self, token: int, message: str) -> None:
        self._tasks.pop(("asset", token), None)
        if token != self._asset_generation:
            return
        self._log.error("Mesh load failed: %s", message)
        self._asset_root = None
        self._asset_path = None
        self.assetFailed.emit(message)

    def _install_index(self, root: SceneObject) -> None:
        self._discard_scene_index()
        for obj in root.walk():
            obj.visible = True
        index = SceneIndex.build(root)
        if self._project is not None:
            for layer in iter_layers(self._project.root):
                index.set_visible(self.scene_key(layer.name), layer.visible)
        self._scene_index = index
        self._log.info("Scene index ready: %d objects", len(index))
        self.sceneIndexChanged.emit(index)

    def _discard_scene_index(self) -> None:
        if self._scene_index is None:
            return
        self._scene_index.restore_all()
        self._scene_index = None
        self.sceneIndexChanged.emit(None)

    # ──────────────────────────────────────────────────────────────────────────
    # Editing
    # ──────────────────────────────────────────────────────────────────────────
    def update_layer(self, target: str, /, **changes: Any) -> bool:
        """
        Apply ``changes`` (name / kind / visible) to the layer called ``target``.
        Returns False when nothing is loaded or no layer has that name.
        """
        if self._project is None:
            self._log.debug("update_layer(%r) ignored: no project", target)
            return False
        root = self._project.root
        new_root = update_layer(root, target, **changes)
        if new_root is root:
            self._log.debug("update_layer(%r): no such layer", target)
            return False

        self._project = replace(self._project, root=new_root)
        self._dirty = True

        current = target
        new_name = changes.get("name")
        if new_name is not None and new_name != target:
            self._scene_keys[new_name] = self._scene_keys.pop(target, target)
            current = new_name
        if "visible" in changes and self._scene_index is not None:
            self._scene_index.set_visible(self.scene_key(current), changes["visible"])

        self.layerUpdated.emit(current, dict(changes))
        self.projectChanged.emit(self._project)
        return True

    def has_renderable(self, layer_name: str) -> bool:
        return self._scene_index is not None and self._scene_index.lookup(self.scene_key(layer_name)) is not None

    def highlight_layer(self, layer_name: str) -> None:
        if self._scene_index is not None:
            self._scene_index.highlight(self.scene_key(layer_name))

    def unhighlight_layer(self, layer_name: str) -> None:
        if self._scene_index is not None:
            self._scene_index.unhighlight(self.scene_key(layer_name))

    # ──────────────────────────────────────────────────────────────────────────
    # Saving / exporting / closing
    # ──────────────────────────────────────────────────────────────────────────
    def save_project(self, path: Optional[PathLike] = None) -> Path:
        """Write the project to ``path`` (default: where it was loaded from). Raises SaveError."""
        written = write_project(self._project, path or self._project_path)
        self._project_path = written
        self._dirty = False
        self.projectSaved.emit(str(written))
        return written

    def request_export(
        self,
        fmt: Union[str, ExportFormat],
        output_path: Optional[PathLike] = None,
        temp: bool = False,
    ) -> int:
        """Start exporting the saved project file. Raises ExportError if it cannot start."""
        if self._project is None:
            raise ExportError("No project is loaded")
        if self._project_path is None:
            raise ExportError("Save the project before exporting")
        if self._export_running:
            raise ExportError("An export is already running")
        fmt = ExportFormat.parse(fmt)
        if self._dirty:
            self._log.warning("Exporting with unsaved edits; the exporter reads %s from disk", self._project_path)

        self._export_token += 1
        token = self._export_token
        self._export_running = True
        self._set_state(SessionState.EXPORTING)
        task = Task(
            token, export_project, self._project_path, fmt, output_path,
            self.exporter, temp, self._cache_dir, name="Export",
        )
        self._start(("export", token), task, self._on_export_finished, self._on_export_failed)
        return token

    @QtCore.Slot(int, object)
    def _on_export_finished(self, token: int, output: Path) -> None:
        self._end_export(token)
        self.exportFinished.emit(str(output))

    @QtCore.Slot(int, str)
    def _on_export_failed(self, token: int, message: str) -> None:
        self._end_export(token)
        self.exportFailed.emit(message)

    def _end_export(self, token: int) -> None:
        self._tasks.pop(("export", token), None)
        self._export_running = False
        if self._state == SessionState.EXPORTING:
            self._set_state(SessionState.LOADED)

    def close(self) -> None:
        """Drop project and mesh; completions still in flight are ignored."""
        self._generation += 1
        self._asset_generation += 1
        self._discard_scene_index()
        self._asset_root = None
        self._asset_path = None
        self._project = None
        self._project_path = None
        self._dirty = False
        self._scene_keys.clear()
        self._set_state(SessionState.EMPTY)
        self.projectChanged.emit(None)

    # ──────────────────────────────────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────────────────────────────────
    def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            self._log.debug("Session state %s -> %s", self._state.value, state.value)
            self._state = state
            self.stateChanged.emit(state.value)

    def _start(self, key: Tuple[str, int], task: Task, on_done: Callable, on_fail: Callable) -> None:
        task.finished.connect(on_done)
        task.failed.connect(on_fail)
        self._tasks[key] = task
        task.start(self._threaded)
