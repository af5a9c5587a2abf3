"""
版本说明符解析模块。

将用户输入的版本说明符解析为规范化的版本号。
"""

import logging
from typing import Optional

from nodespark.core import version_utils
from nodespark.core.interfaces import IRemoteFetcher
from nodespark.core.remote_fetcher import NoVersionsPublishedError
from nodespark.utils.input_validator import InputValidator, InputValidationError
from nodespark.utils.logger import get_logger

# "lts" 目前与 "latest" 解析结果相同，都取远程目录中的最新版本
ALIASES = ("latest", "lts")


class ResolverError(Exception):
    """版本解析错误异常。"""
    pass


class InvalidSpecifierError(ResolverError):
    """版本说明符既不是语义化版本也不是已知别名。"""

    def __init__(self, specifier: str):
        self.specifier = specifier
        super().__init__(f"无效的版本格式: {specifier}")


class VersionResolver:
    """
    版本解析器类。

    不访问文件系统和配置，只有别名解析需要查询远程目录。
    """

    def __init__(self, remote_fetcher: IRemoteFetcher, logger: Optional[logging.Logger] = None):
        """
        初始化版本解析器。

        参数:
            remote_fetcher: 远程版本目录
            logger: 日志记录器
        """
        self.remote_fetcher = remote_fetcher
        self.logger = logger or get_logger()

    def resolve(self, specifier: str) -> str:
        """
        解析版本说明符。

        参数:
            specifier: 语义化版本（可带前缀 "v"）或别名 latest/lts

        返回:
            规范化的版本号

        抛出:
            InvalidSpecifierError: 无法识别的说明符
            CatalogUnavailableError: 解析别名时远程目录不可用
            NoVersionsPublishedError: 解析别名时远程目录为空
        """
        try:
            InputValidator.validate_specifier(specifier)
        except InputValidationError as e:
            self.logger.error(f"版本说明符验证失败: {e}")
            raise InvalidSpecifierError(specifier or "") from e

        version = version_utils.normalize_version(specifier)
        if version is not None:
            return version

        alias = specifier.strip()
        if alias in ALIASES:
            self.logger.info(f"正在获取 {alias} 对应的版本...")
            catalog = self.remote_fetcher.fetch_catalog()
            if not catalog:
                raise NoVersionsPublishedError("远程没有可用的 Node.js 版本")
            self.logger.debug(f"{alias} 解析为 {catalog[0]}")
            return catalog[0]

        raise InvalidSpecifierError(specifier)
