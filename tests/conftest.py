"""
Shared fixtures for Quill Publisher tests.

Provides sample Quill documents, layer trees, mesh scenes and fake exporter
binaries.
"""
import copy
import json
import os
import sys
import textwrap

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from quillpub.core.layers import LayerNode


# ── Sample Quill documents ──────────────────────────────────────────────

SAMPLE_DOC = {
    "Version": 1,
    "Sequence": {
        "Metadata": {"Title": "Forest"},
        "BackgroundColor": [0.1, 0.1, 0.1],
        "RootLayer": {
            "Name": "Root",
            "Type": "Group",
            "Visible": True,
            "Locked": False,
            "Implementation": {
                "Children": [
                    {
                        "Name": "A",
                        "Type": "Group",
                        "Visible": False,
                        "Transform": {"Translation": [0, 1, 0]},
                        "Implementation": {
                            "Children": [
                                {
                                    "Name": "B",
                                    "Type": "Paint",
                                    "Visible": True,
                                    "Implementation": {"Drawings": [{"DataFileOffset": "1A2B"}]},
                                },
                            ],
                        },
                    },
                    {"Name": "Cam", "Type": "Camera", "Visible": True},
                    {
                        "Name": "Empty",
                        "Type": "Group",
                        "Visible": True,
                        "Implementation": {"Children": [], "KeepAlive": None},
                    },
                ],
            },
        },
    },
    "Gallery": {"Thumbnails": []},
}


def node(name, *children, visible=True, kind="Group"):
    """Tiny tree builder: node("Root", node("A", visible=False), ...)."""
    return LayerNode(name=name, kind=kind, visible=visible, children=tuple(children))


@pytest.fixture
def sample_doc():
    """Fresh deep copy of the sample Quill document"""
    return copy.deepcopy(SAMPLE_DOC)


@pytest.fixture
def sample_project_file(tmp_path, sample_doc):
    """Sample document written to <tmp>/Forest/Quill.json"""
    folder = tmp_path / "Forest"
    folder.mkdir()
    path = folder / "Quill.json"
    path.write_text(json.dumps(sample_doc, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def small_tree():
    """Root{A(hidden){B}, C{D, E}}"""
    return node(
        "Root",
        node("A", node("B", kind="Paint"), visible=False),
        node("C", node("D", kind="Paint"), node("E", kind="Paint")),
    )


# ── Mesh scenes ─────────────────────────────────────────────────────────

@pytest.fixture
def scene_root():
    """SceneObject hierarchy named after the sample layers, materials are plain strings."""
    import trimesh
    from quillpub.core.asset import SceneObject

    root = SceneObject("world")
    a = root.add(SceneObject("A"))
    a.add(SceneObject("B", geometry=trimesh.creation.box(), material="mat-B"))
    a.add(SceneObject("B_detail", geometry=trimesh.creation.icosphere(subdivisions=1), material="mat-B2"))
    root.add(SceneObject("Cam"))
    return root


# ── Fake exporter binaries ──────────────────────────────────────────────

FAKE_EXPORTER = textwrap.dedent("""
    import json, sys
    settings = json.load(open(sys.argv[1], encoding="utf-8"))
    with open(settings["OutputFile"], "w", encoding="utf-8") as fh:
        fh.write(settings["Exporter"] + " from " + settings["InputFile"])
    print("exported", settings["OutputFile"])
""")

FAILING_EXPORTER = textwrap.dedent("""
    import sys
    sys.stderr.write("Corrupt stroke data\\n")
    sys.exit(3)
""")

LAZY_EXPORTER = textwrap.dedent("""
    print("nothing to do")
""")


def _script(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return [sys.executable, str(path)]


@pytest.fixture
def fake_exporter(tmp_path):
    """Command that writes the requested output file"""
    return _script(tmp_path, "fake_exporter.py", FAKE_EXPORTER)


@pytest.fixture
def failing_exporter(tmp_path):
    """Command that exits non-zero with a message on stderr"""
    return _script(tmp_path, "failing_exporter.py", FAILING_EXPORTER)


@pytest.fixture
def lazy_exporter(tmp_path):
    """Command that succeeds without writing anything"""
    return _script(tmp_path, "lazy_exporter.py", LAZY_EXPORTER)
