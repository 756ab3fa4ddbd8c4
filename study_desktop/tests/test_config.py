from study_desktop.config import DEFAULT_BREAK_MINUTES, DEFAULT_WORK_MINUTES, load_config


def test_defaults(monkeypatch, tmp_path):
    for name in ("STUDY_DESKTOP_DB", "STUDY_DESKTOP_WORK_MINUTES", "STUDY_DESKTOP_BREAK_MINUTES",
                 "STUDY_DESKTOP_HISTORY_LIMIT", "STUDY_DESKTOP_LANG", "STUDY_DESKTOP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    cfg = load_config()
    assert cfg.db_path == str(tmp_path / "study_desktop.db")
    assert cfg.work_minutes == DEFAULT_WORK_MINUTES
    assert cfg.break_minutes == DEFAULT_BREAK_MINUTES
    assert cfg.history_limit == 20
    assert cfg.lang == "zh"
    assert cfg.log_level == "INFO"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDY_DESKTOP_DB", str(tmp_path / "x.db"))
    monkeypatch.setenv("STUDY_DESKTOP_WORK_MINUTES", "50")
    monkeypatch.setenv("STUDY_DESKTOP_BREAK_MINUTES", "10")
    monkeypatch.setenv("STUDY_DESKTOP_LANG", "en")
    monkeypatch.setenv("STUDY_DESKTOP_LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.db_path == str(tmp_path / "x.db")
    assert (cfg.work_minutes, cfg.break_minutes) == (50, 10)
    assert cfg.lang == "en"
    assert cfg.log_level == "DEBUG"


def test_out_of_range_values_fall_back(monkeypatch):
    monkeypatch.setenv("STUDY_DESKTOP_WORK_MINUTES", "500")
    monkeypatch.setenv("STUDY_DESKTOP_BREAK_MINUTES", "soon")
    monkeypatch.setenv("STUDY_DESKTOP_LANG", "fr")
    cfg = load_config()
    assert cfg.work_minutes == DEFAULT_WORK_MINUTES
    assert cfg.break_minutes == DEFAULT_BREAK_MINUTES
    assert cfg.lang == "zh"
