import os, sys, pathlib
import json
from datetime import datetime
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.services.workspace_service import SUBDIRS, WorkspaceService


def test_creates_project_tree(tmp_path, runner):
    svc = WorkspaceService(str(tmp_path / "Projects"), runner)
    report = svc.create_project("vision", dataset="iris")
    project = tmp_path / "Projects" / "vision"
    assert report.path == str(project)
    for sub in SUBDIRS:
        assert (project / sub).is_dir()
    assert (project / "README.md").read_text(encoding="utf-8").startswith("# vision")
    assert (project / "scripts" / "download_iris.py").exists()
    assert os.access(project / "run_jupyter.sh", os.X_OK)

    nb = json.loads((project / "notebooks" / "01_data_exploration.ipynb").read_text(encoding="utf-8"))
    assert nb["nbformat"] == 4
    assert nb["metadata"]["kernelspec"]["name"] == "vision"
    assert nb["cells"][0]["cell_type"] == "markdown"
    assert nb["cells"][1]["outputs"] == []
    assert (project / ".git").is_dir()

    lines = runner.lines()
    venv_py = str(project / "venv" / "bin" / "python")
    assert "python3 -m venv venv" in lines
    assert f"{venv_py} -m pip install -r requirements.txt" in lines
    assert f"{venv_py} -m ipykernel install --user --name=vision --display-name=Python (vision)" in lines
    assert f"{venv_py} {project / 'scripts' / 'download_iris.py'}" in lines
    assert report.venv and report.warnings == []


def test_no_dataset_no_venv(tmp_path, runner):
    svc = WorkspaceService(str(tmp_path), runner)
    report = svc.create_project("plain", create_venv=False)
    assert not any("download_" in f for f in report.files)
    assert not any("venv" in ln for ln in runner.lines())
    assert report.venv is False


def test_existing_project_requires_overwrite(tmp_path, runner):
    svc = WorkspaceService(str(tmp_path), runner)
    (tmp_path / "demo").mkdir()
    (tmp_path / "demo" / "keep.txt").write_text("x", encoding="utf-8")
    with pytest.raises(ValueError, match="E_PROJECT_EXISTS"):
        svc.create_project("demo", create_venv=False)

    report = svc.create_project("demo", overwrite=True, create_venv=False, now=datetime(2025, 4, 28, 9, 0, 0))
    assert report.backup == str(tmp_path / "demo.backup.20250428090000")
    assert (tmp_path / "demo.backup.20250428090000" / "keep.txt").exists()
    assert not (tmp_path / "demo" / "keep.txt").exists()


def test_rejects_bad_input(tmp_path, runner):
    svc = WorkspaceService(str(tmp_path), runner)
    with pytest.raises(ValueError, match="E_NAME_EMPTY"):
        svc.create_project("  ")
    with pytest.raises(ValueError, match="E_DATASET_INVALID"):
        svc.create_project("x", dataset="imagenet")
    assert os.listdir(tmp_path) == []


def test_tool_failures_become_warnings(tmp_path, runner):
    runner.fail = {"-m venv", "git commit"}
    svc = WorkspaceService(str(tmp_path), runner)
    report = svc.create_project("demo", dataset="mnist")
    assert report.venv is False
    assert [w.split(" failed")[0] for w in report.warnings] == ["git commit", "venv creation"]
    assert not any("pip install" in ln for ln in runner.lines())
    assert (tmp_path / "demo" / "README.md").exists()
