import os, sys, pathlib
import time
import pytest
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.config import DownloadsSettings
from devsetup.services.downloads_service import DownloadsService, category_for


def make_service(tmp_path, platform="linux", **overrides):
    downloads = tmp_path / "Downloads"
    downloads.mkdir(exist_ok=True)
    values = dict(downloads_dir=str(downloads), delete_old=False)
    values.update(overrides)
    return DownloadsService(DownloadsSettings(**values), platform=platform), downloads


def test_category_for():
    assert category_for("setup.EXE") == "Installers"
    assert category_for("photo.jpeg") == "Images"
    assert category_for("notes.md") == "Documents"
    assert category_for("src.tar.gz") == "Archives"
    assert category_for("script.py") == "Code"
    assert category_for("README") is None
    assert category_for(".zip") is None


def test_organize_moves_top_level_files(tmp_path):
    svc, downloads = make_service(tmp_path)
    for name in ("report.pdf", "pic.png", "tool.deb", "unknown.xyz"):
        (downloads / name).write_text("x", encoding="utf-8")
    (downloads / "nested").mkdir()
    (downloads / "nested" / "inside.pdf").write_text("x", encoding="utf-8")

    report = svc.organize()
    assert report.moved == {"Documents": ["report.pdf"], "Images": ["pic.png"], "Installers": ["tool.deb"]}
    assert (downloads / "Documents" / "report.pdf").exists()
    assert (downloads / "unknown.xyz").exists()
    assert (downloads / "nested" / "inside.pdf").exists()


def test_disabled_category_is_left_alone(tmp_path):
    svc, downloads = make_service(tmp_path, organize_images=False)
    (downloads / "pic.png").write_text("x", encoding="utf-8")
    assert svc.organize().moved_count == 0
    assert (downloads / "pic.png").exists()


def test_name_collision_gets_suffix(tmp_path):
    svc, downloads = make_service(tmp_path)
    (downloads / "Documents").mkdir()
    (downloads / "Documents" / "cv.pdf").write_text("old", encoding="utf-8")
    (downloads / "cv.pdf").write_text("new", encoding="utf-8")
    report = svc.organize()
    assert report.moved["Documents"] == ["cv (1).pdf"]
    assert (downloads / "Documents" / "cv.pdf").read_text(encoding="utf-8") == "old"
    assert (downloads / "Documents" / "cv (1).pdf").read_text(encoding="utf-8") == "new"


def test_missing_downloads_dir(tmp_path):
    svc = DownloadsService(DownloadsSettings(downloads_dir=str(tmp_path / "nope")))
    with pytest.raises(ValueError, match="E_DOWNLOADS_DIR_MISSING"):
        svc.organize()


def test_clean_old_files_only_touches_temp(tmp_path):
    svc, downloads = make_service(tmp_path, delete_old=True, old_days=30)
    temp = downloads / "Temp"
    temp.mkdir()
    old, fresh = temp / "old.bin", temp / "fresh.bin"
    old.write_text("x", encoding="utf-8")
    fresh.write_text("x", encoding="utf-8")
    stale = downloads / "stale.xyz"
    stale.write_text("x", encoding="utf-8")
    now = time.time()
    for p in (old, stale):
        os.utime(p, (now - 40 * 86400, now - 40 * 86400))

    report = svc.organize(now=now)
    assert report.cleaned == [str(old)]
    assert fresh.exists() and stale.exists()


def test_schedule_on_linux_is_a_cron_line(tmp_path):
    svc, _ = make_service(tmp_path)
    scripts = tmp_path / "scripts"
    art = svc.write_schedule_artifacts(str(scripts), "weekly", logs_dir=str(scripts / "logs"))
    assert os.access(art.runner_script, os.X_OK)
    assert art.cron_line.startswith("0 3 * * 0 " + art.runner_script)
    assert art.cron_line.endswith("downloads_organizer.log 2>&1")
    assert art.batch_file is None


def test_schedule_on_wsl_writes_windows_helpers(tmp_path):
    svc, _ = make_service(tmp_path, platform="wsl")
    art = svc.write_schedule_artifacts(str(tmp_path / "scripts"))
    assert art.cron_line is None
    with open(art.batch_file, "rb") as f:
        assert b"\r\n" in f.read()
    ps1 = pathlib.Path(art.task_script).read_text(encoding="utf-8")
    assert "-Daily -At 3am" in ps1
    assert "organize_downloads.bat" in ps1
