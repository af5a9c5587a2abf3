import io
import os
import tarfile
import zipfile
from pathlib import Path

import pytest
import requests

from nodespark.core.download_manager import (
    DownloadManager,
    ExtractFailedError,
    FetchFailedError,
    detect_platform,
)

MIRROR = "https://nodejs.example/dist"
TOP = "node-v18.17.0-linux-x64"


def _add_dir(tf: tarfile.TarFile, name: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tf.addfile(info)


def _add_file(tf: tarfile.TarFile, name: str, data: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


def _add_symlink(tf: tarfile.TarFile, name: str, target: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    tf.addfile(info)


def build_node_tarball(path: Path) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        _add_dir(tf, TOP)
        _add_dir(tf, f"{TOP}/bin")
        _add_file(tf, f"{TOP}/bin/node", b"#!/bin/sh\necho node\n", 0o755)
        _add_file(tf, f"{TOP}/lib/node_modules/npm/bin/npm-cli.js", b"// npm\n", 0o755)
        _add_symlink(tf, f"{TOP}/bin/npm", "../lib/node_modules/npm/bin/npm-cli.js")
    return path


@pytest.fixture
def manager(tmp_path: Path) -> DownloadManager:
    dm = DownloadManager(MIRROR, tmp_path / "temp")
    dm.os_name, dm.arch, dm.ext = "linux", "x64", "tar.gz"
    return dm


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("Linux", "x86_64", ("linux", "x64", "tar.gz")),
        ("Darwin", "arm64", ("darwin", "arm64", "tar.gz")),
        ("Windows", "AMD64", ("win", "x64", "zip")),
        ("Linux", "aarch64", ("linux", "arm64", "tar.gz")),
        ("Linux", "i686", ("linux", "x86", "tar.gz")),
        ("Linux", "riscv64", ("linux", "x64", "tar.gz")),
    ],
)
def test_detect_platform(system: str, machine: str, expected) -> None:
    assert detect_platform(system, machine) == expected


def test_build_download_url(manager: DownloadManager) -> None:
    assert manager.build_download_url("18.17.0") == (
        "https://nodejs.example/dist/v18.17.0/node-v18.17.0-linux-x64.tar.gz"
    )


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_extract_tar_strips_top_level_directory(tmp_path: Path, manager: DownloadManager) -> None:
    archive = build_node_tarball(tmp_path / "node.tar.gz")
    destination = tmp_path / "versions" / "18.17.0"

    manager.extract(archive, destination)

    node = destination / "bin" / "node"
    assert node.read_text() == "#!/bin/sh\necho node\n"
    assert os.access(node, os.X_OK)
    npm = destination / "bin" / "npm"
    assert npm.is_symlink()
    assert os.readlink(npm) == "../lib/node_modules/npm/bin/npm-cli.js"
    assert npm.resolve() == (destination / "lib/node_modules/npm/bin/npm-cli.js").resolve()
    assert list((tmp_path / "temp").iterdir()) == []


def test_extract_zip_strips_top_level_directory(tmp_path: Path, manager: DownloadManager) -> None:
    archive = tmp_path / "node.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("node-v20.5.0-win-x64/node.exe", b"MZ")
        zf.writestr("node-v20.5.0-win-x64/npm.cmd", b"@echo npm")
        zf.writestr("node-v20.5.0-win-x64/node_modules/npm/package.json", b"{}")
    destination = tmp_path / "versions" / "20.5.0"

    manager.extract(archive, destination)

    assert (destination / "node.exe").read_bytes() == b"MZ"
    assert (destination / "npm.cmd").exists()
    assert (destination / "node_modules" / "npm" / "package.json").exists()


@pytest.mark.parametrize("member", ["../evil.txt", "/etc/evil.txt"])
def test_extract_rejects_path_traversal(tmp_path: Path, manager: DownloadManager, member: str) -> None:
    archive = tmp_path / "evil.tar.gz"
    with tarfile.open(archive, "w:gz") as tf:
        _add_file(tf, f"{TOP}/bin/node", b"node")
        _add_file(tf, member, b"evil")
    destination = tmp_path / "versions" / "18.17.0"

    with pytest.raises(ExtractFailedError):
        manager.extract(archive, destination)

    assert not destination.exists()
    assert not (tmp_path / "evil.txt").exists()
    assert list((tmp_path / "temp").iterdir()) == []


def test_extract_rejects_escaping_symlink(tmp_path: Path, manager: DownloadManager) -> None:
    archive = tmp_path / "evil.tar.gz"
    with tarfile.open(archive, "w:gz") as tf:
        _add_file(tf, f"{TOP}/bin/node", b"node")
        _add_symlink(tf, f"{TOP}/bin/npm", "../../../outside")
    destination = tmp_path / "versions" / "18.17.0"

    with pytest.raises(ExtractFailedError):
        manager.extract(archive, destination)
    assert not destination.exists()


def test_extract_unknown_format(tmp_path: Path, manager: DownloadManager) -> None:
    archive = tmp_path / "node.rar"
    archive.write_bytes(b"")
    with pytest.raises(ExtractFailedError):
        manager.extract(archive, tmp_path / "out")


def test_extract_corrupt_archive(tmp_path: Path, manager: DownloadManager) -> None:
    archive = tmp_path / "node.tar.gz"
    archive.write_bytes(b"definitely not gzip")
    destination = tmp_path / "out"
    with pytest.raises(ExtractFailedError):
        manager.extract(archive, destination)
    assert not destination.exists()


class StreamingResponse:
    def __init__(self, chunks, status_code: int = 200, total=None):
        self.chunks = chunks
        self.status_code = status_code
        size = sum(len(c) for c in chunks if isinstance(c, bytes)) if total is None else total
        self.headers = {"content-length": str(size)}
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=None):
        for chunk in self.chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


def _serve(monkeypatch: pytest.MonkeyPatch, response: StreamingResponse) -> list:
    requested = []

    def fake_get(url, stream=False, timeout=None, **kwargs):
        requested.append(url)
        assert stream
        return response

    monkeypatch.setattr(requests, "get", fake_get)
    return requested


def test_fetch_reports_progress(tmp_path: Path, manager: DownloadManager, monkeypatch: pytest.MonkeyPatch) -> None:
    response = StreamingResponse([b"abc", b"defg"])
    _serve(monkeypatch, response)
    progress = []

    dest = manager.fetch("https://x/file.tar.gz", tmp_path / "dl" / "file.tar.gz",
                         lambda done, total: progress.append((done, total)))

    assert dest.read_bytes() == b"abcdefg"
    assert progress == [(3, 7), (7, 7)]
    assert response.closed
    assert not (tmp_path / "dl" / "file.tar.gz.part").exists()


@pytest.mark.parametrize(
    "response",
    [
        StreamingResponse([b"abc"], status_code=404),
        StreamingResponse([b"abc", requests.ConnectionError("reset")]),
        StreamingResponse([b"abc"], total=100),
    ],
)
def test_fetch_failure_leaves_nothing(
    tmp_path: Path,
    manager: DownloadManager,
    monkeypatch: pytest.MonkeyPatch,
    response: StreamingResponse,
) -> None:
    _serve(monkeypatch, response)
    dest = tmp_path / "file.tar.gz"

    with pytest.raises(FetchFailedError):
        manager.fetch("https://x/file.tar.gz", dest)

    assert list(tmp_path.glob("file.tar.gz*")) == []


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_install_payload(tmp_path: Path, manager: DownloadManager, monkeypatch: pytest.MonkeyPatch) -> None:
    payload = build_node_tarball(tmp_path / "source.tar.gz").read_bytes()
    requested = _serve(monkeypatch, StreamingResponse([payload]))
    target = tmp_path / "versions" / "18.17.0"

    manager.install_payload("18.17.0", target)

    assert requested == [f"{MIRROR}/v18.17.0/node-v18.17.0-linux-x64.tar.gz"]
    assert (target / "bin" / "node").exists()
    assert list((tmp_path / "temp").iterdir()) == []


def test_install_payload_failed_extract_leaves_no_version(
    tmp_path: Path, manager: DownloadManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    _serve(monkeypatch, StreamingResponse([b"not an archive"]))
    target = tmp_path / "versions" / "18.17.0"

    with pytest.raises(ExtractFailedError):
        manager.install_payload("18.17.0", target)

    assert not target.exists()
    assert list((tmp_path / "temp").iterdir()) == []
