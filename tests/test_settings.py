from pathlib import Path

import pytest

from nodespark.core.settings import (
    DEFAULT_MIRROR,
    DEFAULT_TIMEOUT,
    NodeSparkDirs,
    load_settings,
)


def test_home_argument_wins_over_environment(tmp_path: Path) -> None:
    env = {"NODESPARK_HOME": str(tmp_path / "from-env")}
    settings = load_settings(home=str(tmp_path / "from-arg"), environ=env)
    assert settings.dirs.data_dir == tmp_path / "from-arg"
    assert settings.dirs.config_file == tmp_path / "from-arg" / "config" / "config.json"


def test_environment_overrides(tmp_path: Path) -> None:
    env = {
        "NODESPARK_HOME": str(tmp_path),
        "NODESPARK_MIRROR": "https://mirror.example/node/",
        "NODESPARK_TIMEOUT": "5",
    }
    settings = load_settings(verbose=True, environ=env)
    assert settings.dirs.versions_dir == tmp_path / "versions"
    assert settings.index_url == "https://mirror.example/node/index.json"
    assert settings.request_timeout == 5.0
    assert settings.verbose is True


def test_defaults(tmp_path: Path) -> None:
    settings = load_settings(home=str(tmp_path), environ={})
    assert settings.mirror_url == DEFAULT_MIRROR
    assert settings.request_timeout == DEFAULT_TIMEOUT


@pytest.mark.parametrize("value", ["abc", "0", "-1"])
def test_invalid_timeout_is_rejected(tmp_path: Path, value: str) -> None:
    with pytest.raises(ValueError):
        load_settings(home=str(tmp_path), environ={"NODESPARK_TIMEOUT": value})


def test_ensure_creates_layout(tmp_path: Path) -> None:
    dirs = NodeSparkDirs.from_home(tmp_path).ensure()
    for directory in (dirs.config_dir, dirs.versions_dir, dirs.bin_dir, dirs.temp_dir):
        assert directory.is_dir()


def test_relative_home_is_made_absolute(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings(home="nsk-home", environ={})
    assert settings.dirs.data_dir.is_absolute()
    assert settings.dirs.bin_dir == tmp_path / "nsk-home" / "bin"


def test_relative_home_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    settings = load_settings(environ={"NODESPARK_HOME": "nsk-home"})
    assert settings.dirs.versions_dir == tmp_path / "nsk-home" / "versions"
