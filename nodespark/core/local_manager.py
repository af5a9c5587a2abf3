"""
本地版本管理模块。

提供本地已安装版本的扫描和查询功能。
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from nodespark.core import version_utils
from nodespark.core.interfaces import ILocalManager
from nodespark.utils.logger import get_logger


class LocalManagerError(Exception):
    """本地管理错误异常。"""
    pass


class VersionScanError(LocalManagerError):
    """版本目录扫描失败。"""
    pass


class GlobalPackagesError(LocalManagerError):
    """全局 npm 包列表获取失败。"""
    pass


class LocalManager(ILocalManager):
    """
    本地版本管理器类。

    版本目录本身就是安装记录：versions 目录下的每个子目录即一个已安装版本。
    每次查询都重新扫描文件系统，不缓存任何结果。
    实现 ILocalManager 抽象接口。
    """

    def __init__(self, versions_dir: Path, logger: Optional[logging.Logger] = None):
        """
        初始化本地版本管理器。

        参数:
            versions_dir: 版本根目录
            logger: 日志记录器
        """
        self.versions_dir = Path(versions_dir)
        self.logger = logger or get_logger()

    def get_version_path(self, version: str) -> Path:
        """
        获取指定版本的安装目录（不检查是否存在）。

        参数:
            version: 版本号

        返回:
            安装目录路径
        """
        return self.versions_dir / version

    def exists(self, version: str) -> bool:
        """
        判断指定版本是否已安装。

        参数:
            version: 版本号

        返回:
            已安装返回 True
        """
        if not version:
            return False
        return self.get_version_path(version).is_dir()

    def _scan(self) -> List[str]:
        """列出版本根目录下的所有子目录名称。"""
        if not self.versions_dir.exists():
            self.logger.debug(f"版本根目录不存在: {self.versions_dir}")
            return []
        try:
            return [
                entry.name
                for entry in os.scandir(self.versions_dir)
                if entry.is_dir()
            ]
        except OSError as e:
            self.logger.error(f"扫描版本目录时发生文件系统错误: {e}")
            raise VersionScanError(f"无法扫描版本目录 {self.versions_dir}: {e}") from e

    def list_versions(self) -> List[str]:
        """
        列出已安装版本。

        无法解析为语义化版本的目录同样保留，排在最后。

        返回:
            版本号列表，按版本号降序排列
        """
        versions = version_utils.sort_versions_desc(self._scan())
        self.logger.debug(f"找到 {len(versions)} 个本地版本")
        return versions

    def list_global_packages(self, npm_path: Path, timeout: float = 60.0) -> List[Dict[str, str]]:
        """
        列出全局安装的 npm 包。

        参数:
            npm_path: npm 启动器路径
            timeout: 命令超时时间（秒）

        返回:
            包信息列表，每个元素包含 name、version

        抛出:
            GlobalPackagesError: npm 无法执行
        """
        cmd = [str(npm_path), "list", "--global", "--depth=0"]
        self.logger.debug(f"执行命令: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise GlobalPackagesError(f"执行 npm 超时 ({timeout} 秒)") from e
        except OSError as e:
            raise GlobalPackagesError(f"无法执行 npm: {e}") from e

        if result.returncode != 0:
            self.logger.debug(f"npm list 命令返回状态码 {result.returncode}")

        return parse_global_packages(result.stdout)


def parse_global_packages(output: str) -> List[Dict[str, str]]:
    """
    解析 `npm list --global --depth=0` 的输出。

    参数:
        output: 命令标准输出

    返回:
        包信息列表，每个元素包含 name、version
    """
    packages = []
    for line in output.splitlines():
        if not line.strip() or "npm ERR!" in line:
            continue
        # 第一行是全局 node_modules 的路径
        if "@" not in line or line.startswith("/") or ":" in line[:3]:
            continue
        entry = line.lstrip("+-`|─│├└┬ ").strip()
        name, sep, version = entry.rpartition("@")
        if not sep or not name:
            continue
        packages.append({"name": name, "version": version.strip()})
    return packages
