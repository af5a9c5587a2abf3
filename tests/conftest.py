"""Shared fixtures for the NodeSpark test suite."""

from pathlib import Path
from typing import List, Optional

import pytest

from nodespark.core.interfaces import IDownloadManager, IRemoteFetcher
from nodespark.core.settings import NodeSparkDirs, Settings

CATALOG = ["20.5.0", "18.17.0", "16.20.0"]


class StubFetcher(IRemoteFetcher):
    """Remote catalog served from memory."""

    def __init__(self, versions: Optional[List[str]] = None):
        self.versions = list(CATALOG if versions is None else versions)
        self.calls = 0

    def fetch_catalog(self) -> List[str]:
        self.calls += 1
        return list(self.versions)

    def get_remote_versions(self):
        self.calls += 1
        return [
            {"version": v, "date": "2023-01-01", "lts": "Hydrogen" if v.startswith("18.") else False}
            for v in self.versions
        ]


class FakeDownloadManager(IDownloadManager):
    """Builds a payload directory with node, npm and npx instead of downloading."""

    def __init__(self):
        self.installed: List[str] = []

    def build_download_url(self, version: str) -> str:
        return f"https://example.invalid/v{version}/node-v{version}-linux-x64.tar.gz"

    def install_payload(self, version, target_dir, progress_callback=None):
        self.installed.append(version)
        bin_dir = Path(target_dir) / "bin"
        bin_dir.mkdir(parents=True)
        for name in ("node", "npm", "npx"):
            (bin_dir / name).write_text(f"#!/bin/sh\necho {name} {version}\n")
        if progress_callback:
            progress_callback(10, 10)
        return Path(target_dir)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(dirs=NodeSparkDirs.from_home(tmp_path / "home"))


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def fake_downloads() -> FakeDownloadManager:
    return FakeDownloadManager()
