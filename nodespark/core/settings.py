"""
运行设置模块。

提供用户目录布局和运行时设置的解析功能。
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "node-spark"
HOME_ENV = "NODESPARK_HOME"
MIRROR_ENV = "NODESPARK_MIRROR"
TIMEOUT_ENV = "NODESPARK_TIMEOUT"
DEFAULT_MIRROR = "https://nodejs.org/dist"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class NodeSparkDirs:
    """NodeSpark 使用的目录布局。"""

    config_dir: Path
    data_dir: Path

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def versions_dir(self) -> Path:
        return self.data_dir / "versions"

    @property
    def bin_dir(self) -> Path:
        return self.data_dir / "bin"

    @property
    def temp_dir(self) -> Path:
        return self.data_dir / "temp"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @classmethod
    def from_home(cls, home: Path) -> "NodeSparkDirs":
        """所有目录都放在同一个根目录下。"""
        home = Path(home)
        return cls(config_dir=home / "config", data_dir=home)

    @classmethod
    def default(cls) -> "NodeSparkDirs":
        """使用平台约定的用户配置目录和数据目录。"""
        return cls(
            config_dir=Path(user_config_dir(APP_NAME, appauthor=False)),
            data_dir=Path(user_data_dir(APP_NAME, appauthor=False)),
        )

    def ensure(self) -> "NodeSparkDirs":
        """
        创建所有目录（已存在时不做任何事）。

        返回:
            自身，便于链式调用
        """
        for directory in (
            self.config_dir,
            self.versions_dir,
            self.bin_dir,
            self.temp_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)
        return self


@dataclass(frozen=True)
class Settings:
    """
    运行时设置。

    由 CLI 构建一次，显式传入版本管理器，不依赖全局状态。
    """

    dirs: NodeSparkDirs
    mirror_url: str = DEFAULT_MIRROR
    request_timeout: float = DEFAULT_TIMEOUT
    verbose: bool = False

    @property
    def index_url(self) -> str:
        return self.mirror_url.rstrip("/") + "/index.json"


def load_settings(
    home: Optional[str] = None,
    verbose: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    根据命令行参数和环境变量构建运行时设置。

    参数:
        home: --home 参数，优先级高于 NODESPARK_HOME
        verbose: 是否启用详细输出
        environ: 环境变量映射，默认为 os.environ

    返回:
        Settings 实例
    """
    env = os.environ if environ is None else environ

    home = home or env.get(HOME_ENV)
    dirs = NodeSparkDirs.from_home(Path(home).expanduser().resolve()) if home else NodeSparkDirs.default()

    mirror_url = env.get(MIRROR_ENV) or DEFAULT_MIRROR

    timeout = DEFAULT_TIMEOUT
    raw_timeout = env.get(TIMEOUT_ENV)
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ValueError(f"{TIMEOUT_ENV} 必须是数字，实际为 {raw_timeout!r}") from None
        if timeout <= 0:
            raise ValueError(f"{TIMEOUT_ENV} 必须大于 0，实际为 {raw_timeout!r}")

    return Settings(
        dirs=dirs,
        mirror_url=mirror_url,
        request_timeout=timeout,
        verbose=verbose,
    )
