import subprocess
from pathlib import Path

import pytest

from nodespark.core.local_manager import (
    GlobalPackagesError,
    LocalManager,
    parse_global_packages,
)


def _make_versions(root: Path, *names: str) -> None:
    for name in names:
        (root / name).mkdir(parents=True)


def test_list_versions_orders_semver_then_opaque(tmp_path: Path) -> None:
    _make_versions(tmp_path, "16.20.0", "beta-foo", "20.5.0", "18.17.0")
    (tmp_path / "stray-file").write_text("ignored")
    manager = LocalManager(tmp_path)
    assert manager.list_versions() == ["20.5.0", "18.17.0", "16.20.0", "beta-foo"]


def test_missing_versions_dir_is_empty(tmp_path: Path) -> None:
    assert LocalManager(tmp_path / "missing").list_versions() == []


def test_exists_and_path(tmp_path: Path) -> None:
    _make_versions(tmp_path, "18.17.0")
    manager = LocalManager(tmp_path)
    assert manager.exists("18.17.0")
    assert not manager.exists("20.5.0")
    assert not manager.exists("")
    assert manager.get_version_path("20.5.0") == tmp_path / "20.5.0"


def test_parse_global_packages() -> None:
    output = (
        "/usr/local/lib\n"
        "├── @vue/cli@5.0.8\n"
        "├── corepack@0.19.0\n"
        "└── npm@9.8.0\n"
        "\n"
    )
    assert parse_global_packages(output) == [
        {"name": "@vue/cli", "version": "5.0.8"},
        {"name": "corepack", "version": "0.19.0"},
        {"name": "npm", "version": "9.8.0"},
    ]


def test_parse_global_packages_windows_and_ascii_tree() -> None:
    output = (
        "C:\\Users\\me\\AppData\\Roaming\\npm\n"
        "+-- typescript@5.1.6\n"
        "`-- yarn@1.22.19\n"
        "npm ERR! something odd\n"
    )
    assert parse_global_packages(output) == [
        {"name": "typescript", "version": "5.1.6"},
        {"name": "yarn", "version": "1.22.19"},
    ]


def test_list_global_packages_runs_npm(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="/lib\n└── npm@9.8.0\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    packages = LocalManager(tmp_path).list_global_packages(tmp_path / "bin" / "npm")
    assert packages == [{"name": "npm", "version": "9.8.0"}]
    assert calls == [[str(tmp_path / "bin" / "npm"), "list", "--global", "--depth=0"]]


def test_list_global_packages_missing_npm(tmp_path: Path) -> None:
    with pytest.raises(GlobalPackagesError):
        LocalManager(tmp_path).list_global_packages(tmp_path / "no-such-npm")
