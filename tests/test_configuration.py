import pytest

from rewolftrans import configuration
from rewolftrans.configuration import get_settings, resolve_codec_options
from rewolftrans.errors import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "home" / ".config"))
    for name in ("REWOLF_READ_ENCODING", "REWOLF_WRITE_ENCODING", "REWOLF_VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    configuration._load_config_instance.cache_clear()
    yield
    configuration._load_config_instance.cache_clear()


def test_defaults_without_any_source(tmp_path):
    settings = get_settings(app_dir=tmp_path)
    assert settings.REWOLF_READ_ENCODING == "cp932"
    assert settings.REWOLF_WRITE_ENCODING == "gbk"
    assert settings.REWOLF_VERBOSE is False


def test_dotenv_and_process_environment(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("REWOLF_WRITE_ENCODING=UTF_8\n", encoding="utf-8")
    monkeypatch.setenv("REWOLF_READ_ENCODING", "Shift_JIS")
    settings = get_settings(app_dir=tmp_path)
    assert settings.REWOLF_WRITE_ENCODING == "utf-8"
    assert settings.REWOLF_READ_ENCODING == "shift-jis"


def test_unknown_configured_codec(tmp_path, monkeypatch):
    monkeypatch.setenv("REWOLF_WRITE_ENCODING", "klingon")
    with pytest.raises(ConfigurationError) as excinfo:
        get_settings(app_dir=tmp_path)
    assert "REWOLF_WRITE_ENCODING" in str(excinfo.value)


def test_explicit_codecs_win(tmp_path):
    settings = get_settings(app_dir=tmp_path)
    options = resolve_codec_options("utf-8", None, settings=settings)
    assert options.read_encoding == "utf-8"
    assert options.write_encoding == "gbk"


def test_explicit_unknown_codec(tmp_path):
    settings = get_settings(app_dir=tmp_path)
    with pytest.raises(ConfigurationError):
        resolve_codec_options(None, "klingon", settings=settings)
