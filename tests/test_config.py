import os, sys, pathlib
from dataclasses import replace
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from devsetup.config import (
    DEFAULT_SYNC_FILES, BackupSettings, DotfilesSettings, DownloadsSettings, load_config,
)


def test_load_config_from_env(tmp_path, monkeypatch):
    for var in ("DEVSETUP_SCRIPTS_DIR", "DEVSETUP_PROJECTS_DIR", "DEVSETUP_UNI_DIR", "DEVSETUP_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DEVSETUP_HOME", str(tmp_path))
    monkeypatch.setenv("DEVSETUP_PLATFORM", "linux")
    monkeypatch.setenv("DEVSETUP_LOG_LEVEL", "debug")

    cfg = load_config()
    assert cfg.home == str(tmp_path)
    assert cfg.config_dir == str(tmp_path / "scripts" / "config")
    assert cfg.projects_dir == str(tmp_path / "Projects")
    assert cfg.log_level == "DEBUG"
    assert os.path.isdir(cfg.logs_dir) and os.path.isdir(cfg.academic_dir)


def test_missing_file_is_written_with_defaults(cfg):
    s = BackupSettings.load(cfg)
    assert s.backup_base_dir == os.path.join(cfg.home, "Backups")
    assert s.retention_days == 30 and s.backup_config_files and not s.backup_encryption
    text = pathlib.Path(BackupSettings.path_for(cfg)).read_text(encoding="utf-8")
    assert text.startswith("# Configuration for System Backup\n")
    assert 'RETENTION_DAYS="30"' in text


def test_bad_values_fall_back_to_defaults(cfg):
    path = pathlib.Path(BackupSettings.path_for(cfg))
    path.write_text('RETENTION_DAYS="soon"\nBACKUP_ENCRYPTION="maybe"\nBACKUP_BASE_DIR="/srv/b"\n', encoding="utf-8")
    s = BackupSettings.load(cfg)
    assert s.retention_days == 30
    assert s.backup_encryption is False
    assert s.backup_base_dir == "/srv/b"


def test_update_persists_only_changed_keys(cfg):
    s = DownloadsSettings.load(cfg)
    path = pathlib.Path(DownloadsSettings.path_for(cfg))
    path.write_text(path.read_text(encoding="utf-8") + "# keep me\n", encoding="utf-8")

    s2 = s.update(cfg, old_days=7, organize_code=False)
    assert (s2.old_days, s2.organize_code) == (7, False)
    loaded = DownloadsSettings.load(cfg)
    assert (loaded.old_days, loaded.organize_code) == (7, False)
    assert "# keep me" in path.read_text(encoding="utf-8")


def test_list_values(cfg):
    assert DotfilesSettings.load(cfg).sync_files == DEFAULT_SYNC_FILES
    path = pathlib.Path(DotfilesSettings.path_for(cfg))
    path.write_text('SYNC_FILES=".zshrc, .vimrc,"\n', encoding="utf-8")
    s = DotfilesSettings.load(cfg)
    assert s.sync_files == [".zshrc", ".vimrc"]
    assert s.dotfiles_dir == os.path.join(cfg.home, ".dotfiles")


def test_only_path_settings_expand_home_and_vars(cfg, monkeypatch):
    monkeypatch.setenv("HOME", cfg.home)
    path = pathlib.Path(BackupSettings.path_for(cfg))
    path.write_text('ENCRYPTION_PASSWORD="s3cr$HOME"\nBACKUP_BASE_DIR="~/Archive"\nPROJECTS_DIR="$HOME/code"\n',
                    encoding="utf-8")
    s = BackupSettings.load(cfg)
    assert s.encryption_password == "s3cr$HOME"
    assert s.backup_base_dir == os.path.join(cfg.home, "Archive")
    assert s.projects_dir == os.path.join(cfg.home, "code")

    path.write_text('ENCRYPTION_PASSWORD="~/pw${HOME}"\n', encoding="utf-8")
    assert BackupSettings.load(cfg).encryption_password == "~/pw${HOME}"


def test_quotes_and_backslashes_survive_save_and_update(cfg):
    secret = 'pa"ss\\word\\n'
    path = BackupSettings.path_for(cfg)
    replace(BackupSettings.defaults(cfg), encryption_password=secret).save(path)
    assert BackupSettings.load(cfg).encryption_password == secret

    s = BackupSettings.load(cfg).update(cfg, encryption_password="it's\\" + secret)
    assert BackupSettings.load(cfg).encryption_password == s.encryption_password == "it's\\" + secret
