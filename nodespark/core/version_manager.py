"""
版本管理器模块。

提供 Node.js 版本的安装、切换、删除和列出功能。
"""

import logging
import shutil
from typing import Any, Callable, Dict, List, Optional

from nodespark.core.config_manager import ActivationRecord, ConfigIoError, ConfigManager
from nodespark.core.download_manager import DownloadManager
from nodespark.core.interfaces import (
    IConfigManager,
    IDownloadManager,
    ILauncherManager,
    ILocalManager,
    IRemoteFetcher,
    IVersionManager,
)
from nodespark.core.launcher import LauncherManager
from nodespark.core.local_manager import LocalManager
from nodespark.core.remote_fetcher import RemoteFetcher
from nodespark.core.resolver import VersionResolver
from nodespark.core.settings import Settings
from nodespark.utils.logger import get_logger

REMOTE_LIST_LIMIT = 30


class VersionManagerError(Exception):
    """版本管理错误异常。"""
    pass


class NotInstalledError(VersionManagerError):
    """版本未安装。"""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Node.js {version} 未安装。请先执行 'nsk install {version}'。"
        )


class CannotRemoveActiveError(VersionManagerError):
    """不能删除当前激活的版本。"""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"无法删除当前正在使用的版本 {version}，请先切换到其他版本。"
        )


class RemovalIoError(VersionManagerError):
    """删除版本目录失败。"""

    def __init__(self, version: str, reason: str):
        self.version = version
        super().__init__(f"删除 Node.js {version} 失败: {reason}")


class NoActiveVersionError(VersionManagerError):
    """当前没有激活的版本。"""
    pass


class VersionManager(IVersionManager):
    """
    版本管理器类。

    作为协调者组合版本解析、本地存储、激活配置和启动器管理，
    并保证三者之间的一致性：激活记录指向的版本目录必定存在，
    且所有启动器都指向该目录。
    实现 IVersionManager 抽象接口。
    """

    def __init__(
        self,
        settings: Settings,
        remote_fetcher: Optional[IRemoteFetcher] = None,
        local_manager: Optional[ILocalManager] = None,
        download_manager: Optional[IDownloadManager] = None,
        config_manager: Optional[IConfigManager] = None,
        launcher_manager: Optional[ILauncherManager] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化版本管理器。

        参数:
            settings: 运行时设置
            remote_fetcher: 远程版本目录，默认根据设置创建
            local_manager: 本地版本存储，默认根据设置创建
            download_manager: 下载管理器，默认根据设置创建
            config_manager: 激活配置管理器，默认根据设置创建
            launcher_manager: 启动器管理器，默认根据设置创建
            logger: 日志记录器
        """
        self.settings = settings
        self.logger = logger or get_logger()
        dirs = settings.dirs

        try:
            dirs.ensure()
        except OSError as e:
            self.logger.error(f"创建数据目录失败: {e}")
            raise ConfigIoError(f"无法创建数据目录: {e}") from e

        self.remote_fetcher = remote_fetcher or RemoteFetcher(
            settings.index_url, timeout=settings.request_timeout, logger=self.logger
        )
        self.local_manager = local_manager or LocalManager(dirs.versions_dir, logger=self.logger)
        self.download_manager = download_manager or DownloadManager(
            settings.mirror_url, dirs.temp_dir,
            timeout=settings.request_timeout, logger=self.logger,
        )
        self.config_manager = config_manager or ConfigManager(dirs.config_file, logger=self.logger)
        self.launcher_manager = launcher_manager or LauncherManager(dirs.bin_dir, logger=self.logger)
        self.resolver = VersionResolver(self.remote_fetcher, logger=self.logger)

    def resolve(self, specifier: str) -> str:
        """
        解析版本说明符。

        参数:
            specifier: 版本说明符

        返回:
            规范化的版本号
        """
        return self.resolver.resolve(specifier)

    def get_current_version(self) -> Optional[str]:
        """
        获取当前激活的版本。

        返回:
            当前版本号，未设置返回 None
        """
        return self.config_manager.load().active_version

    def _activate(self, version: str) -> None:
        """
        激活指定版本：先写入激活记录，再切换启动器。

        启动器切换中途失败时激活记录已经更新，
        重新执行 use 会再次整体覆盖所有启动器。

        参数:
            version: 已解析的版本号
        """
        if not self.local_manager.exists(version):
            raise NotInstalledError(version)

        self.config_manager.save(ActivationRecord(version))
        self.launcher_manager.activate(self.local_manager.get_version_path(version))
        self.logger.info(f"已切换到 Node.js {version}")

    def install(
        self,
        specifier: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Dict[str, Any]:
        """
        安装指定版本。

        已安装时直接返回；这是第一个安装的版本且没有激活版本时会自动激活。

        参数:
            specifier: 版本说明符
            progress_callback: 下载进度回调函数

        返回:
            包含 version、already_installed、activated 的字典
        """
        version = self.resolve(specifier)
        result = {"version": version, "already_installed": False, "activated": False}

        if self.local_manager.exists(version):
            self.logger.info(f"Node.js {version} 已安装")
            result["already_installed"] = True
            return result

        self.logger.info(f"正在安装 Node.js {version}")
        target_dir = self.local_manager.get_version_path(version)
        self.download_manager.install_payload(version, target_dir, progress_callback)
        self.logger.info(f"成功安装 Node.js {version}")

        record = self.config_manager.load()
        if record.active_version is None:
            self.logger.info(f"将 Node.js {version} 设为默认版本")
            self._activate(version)
            result["activated"] = True

        return result

    def use(self, specifier: str) -> str:
        """
        切换到指定版本，不会隐式安装。

        参数:
            specifier: 版本说明符

        返回:
            已激活的版本号

        抛出:
            NotInstalledError: 版本未安装，激活记录保持不变
        """
        version = self.resolve(specifier)
        self.logger.info(f"正在切换到 Node.js {version}")
        self._activate(version)
        return version

    def remove(self, specifier: str) -> str:
        """
        删除指定版本。

        参数:
            specifier: 版本说明符

        返回:
            已删除的版本号

        抛出:
            NotInstalledError: 版本未安装
            CannotRemoveActiveError: 版本是当前激活版本
            RemovalIoError: 删除目录失败
        """
        version = self.resolve(specifier)

        if not self.local_manager.exists(version):
            raise NotInstalledError(version)

        if self.config_manager.load().active_version == version:
            raise CannotRemoveActiveError(version)

        path = self.local_manager.get_version_path(version)
        self.logger.info(f"正在删除 {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            self.logger.error(f"删除 Node.js {version} 失败: {e}")
            raise RemovalIoError(version, str(e)) from e

        self.logger.info(f"已删除 Node.js {version}")
        return version

    def list_local(self) -> List[Dict[str, Any]]:
        """
        列出本地已安装版本。

        返回:
            版本信息列表，每个元素包含 version、path、current
        """
        current = self.get_current_version()
        return [
            {
                "version": version,
                "path": str(self.local_manager.get_version_path(version)),
                "current": version == current,
            }
            for version in self.local_manager.list_versions()
        ]

    def list_remote(self, limit: int = REMOTE_LIST_LIMIT) -> Dict[str, Any]:
        """
        列出远程可用版本。

        截断只影响展示，total 始终为完整目录的数量。

        参数:
            limit: 最多返回的条目数，0 或负数表示不截断

        返回:
            包含 versions、total、has_more 的字典；versions 中每个元素包含
            version、date、lts、installed、current
        """
        remote_versions = self.remote_fetcher.get_remote_versions()
        current = self.get_current_version()
        installed = set(self.local_manager.list_versions())

        shown = remote_versions[:limit] if limit and limit > 0 else remote_versions
        entries = [
            {
                "version": v["version"],
                "date": v.get("date"),
                "lts": v.get("lts", False),
                "installed": v["version"] in installed,
                "current": v["version"] == current,
            }
            for v in shown
        ]
        return {
            "versions": entries,
            "total": len(remote_versions),
            "has_more": len(remote_versions) > len(entries),
        }

    def list_global_packages(self) -> List[Dict[str, str]]:
        """
        列出当前激活版本中全局安装的 npm 包。

        返回:
            包信息列表，每个元素包含 name、version

        抛出:
            NoActiveVersionError: 当前没有激活的版本
        """
        current = self.get_current_version()
        if current is None:
            raise NoActiveVersionError("当前没有激活的 Node.js 版本，请先执行 'nsk use <版本>'。")
        npm_path = self.launcher_manager.launcher_path("npm")
        return self.local_manager.list_global_packages(npm_path)
