"""
远程版本获取模块。

提供从发行源获取 Node.js 版本列表的功能。
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from nodespark.core import version_utils
from nodespark.core.interfaces import IRemoteFetcher
from nodespark.utils.logger import get_logger


class RemoteFetcherError(Exception):
    """远程获取错误异常。"""
    pass


class CatalogUnavailableError(RemoteFetcherError):
    """远程版本目录无法获取或无法解析。"""
    pass


class NoVersionsPublishedError(RemoteFetcherError):
    """远程版本目录获取成功但为空。"""
    pass


class RemoteFetcher(IRemoteFetcher):
    """
    远程版本获取器类。

    从发行源的 index.json 获取可用版本列表。只读，不保存任何本地状态。
    实现 IRemoteFetcher 抽象接口。
    """

    def __init__(
        self,
        index_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化远程版本获取器。

        参数:
            index_url: 版本索引文件 URL
            timeout: 请求超时时间（秒）
            session: 可选的 requests 会话
            logger: 日志记录器
        """
        self.index_url = index_url
        self.timeout = timeout
        self.session = session
        self.logger = logger or get_logger()

    def _get(self, url: str) -> requests.Response:
        if self.session is not None:
            return self.session.get(url, timeout=self.timeout)
        return requests.get(url, timeout=self.timeout)

    def _fetch_index(self) -> List[Any]:
        """
        下载并解析索引文件。

        返回:
            索引文件中的条目列表

        抛出:
            CatalogUnavailableError: 网络错误或内容无法解析
        """
        self.logger.debug(f"获取索引文件: {self.index_url}")
        try:
            response = self._get(self.index_url)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            self.logger.error(f"获取远程版本列表失败: {e}")
            raise CatalogUnavailableError(f"无法获取远程版本列表 {self.index_url}: {e}") from e
        except ValueError as e:
            self.logger.error(f"远程版本列表不是合法的 JSON: {e}")
            raise CatalogUnavailableError(f"远程版本列表 {self.index_url} 不是合法的 JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get("versions")
        if not isinstance(data, list):
            raise CatalogUnavailableError(
                f"远程版本列表格式不支持: {type(data).__name__}"
            )
        return data

    def get_remote_versions(self) -> List[Dict[str, Any]]:
        """
        获取远程可用版本的详细信息。

        返回:
            版本信息列表，每个元素包含 version、date、lts，最新版本在前

        抛出:
            CatalogUnavailableError: 网络错误或内容无法解析
        """
        versions = []
        seen = set()
        skipped = 0

        for item in self._fetch_index():
            if not isinstance(item, dict):
                skipped += 1
                continue

            version = version_utils.normalize_version(str(item.get("version", "")))
            if not version or version in seen:
                skipped += 1
                continue
            seen.add(version)

            lts = item.get("lts")
            versions.append({
                "version": version,
                "date": item.get("date"),
                "lts": lts if isinstance(lts, str) else bool(lts),
            })

        if skipped:
            self.logger.warning(f"远程版本列表中有 {skipped} 个无效项被过滤")

        versions = version_utils.sort_versions_desc(versions, key=lambda v: v["version"])
        self.logger.info(f"成功获取 {len(versions)} 个远程版本")
        return versions

    def fetch_catalog(self) -> List[str]:
        """
        获取远程可用版本号列表。

        空列表是合法结果，由调用方决定如何处理。

        返回:
            版本号列表，最新版本在前
        """
        return [v["version"] for v in self.get_remote_versions()]
