"""
激活配置管理器模块。

提供当前激活版本记录的加载、保存和验证功能。
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from nodespark.core import version_utils
from nodespark.core.interfaces import IConfigManager
from nodespark.utils.logger import get_logger

ACTIVE_VERSION_FIELD = "active_version"


class ConfigManagerError(Exception):
    """配置管理错误异常。"""
    pass


class ConfigCorruptError(ConfigManagerError):
    """配置文件内容损坏或结构无法识别。"""
    pass


class ConfigIoError(ConfigManagerError):
    """配置目录创建或配置文件读写失败。"""
    pass


class ConfigValidationError(ConfigManagerError):
    """要保存的激活记录无效。"""
    pass


@dataclass(frozen=True)
class ActivationRecord:
    """
    激活记录。

    active_version 为 None 表示当前没有激活的版本。
    """

    active_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {ACTIVE_VERSION_FIELD: self.active_version}


def _atomic_save_json(file_path: Path, data: Any, indent: int = 2) -> None:
    """
    原子保存 JSON 数据到文件，防止写入中断导致文件损坏。

    参数:
        file_path: 目标文件路径
        data: 要保存的数据
        indent: JSON 缩进
    """
    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
        os.replace(temp_path, file_path)
    except OSError:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
        raise


class ConfigManager(IConfigManager):
    """
    激活配置管理器类。

    负责持久化唯一的激活记录。配置文件只包含一个可选的
    active_version 字段；任何无法识别的结构都会被视为损坏，
    而不是静默回退为默认值。
    实现 IConfigManager 抽象接口。
    """

    ALLOWED_FIELDS = frozenset({ACTIVE_VERSION_FIELD})

    def __init__(self, config_file: Path, logger: Optional[logging.Logger] = None):
        """
        初始化配置管理器。

        参数:
            config_file: 配置文件路径
            logger: 日志记录器，默认为应用日志记录器
        """
        self.config_file = Path(config_file)
        self.logger = logger or get_logger()

    def load(self) -> ActivationRecord:
        """
        加载激活记录。

        如果配置文件不存在，则写入默认记录后返回。

        返回:
            ActivationRecord 实例

        抛出:
            ConfigCorruptError: 文件内容不是合法 JSON 或结构无法识别
            ConfigIoError: 读取或写入失败
        """
        if not self.config_file.exists():
            self.logger.info(f"配置文件不存在，创建默认配置: {self.config_file}")
            record = ActivationRecord()
            self.save(record)
            return record

        self.logger.debug(f"从文件加载配置: {self.config_file}")
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            self.logger.error(f"读取配置文件失败: {e}")
            raise ConfigIoError(f"无法读取配置文件 {self.config_file}: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            self.logger.error(f"配置文件不是合法的 JSON: {e}")
            raise ConfigCorruptError(f"配置文件 {self.config_file} 不是合法的 JSON: {e}") from e

        return self._parse_record(data)

    def _parse_record(self, data: Any) -> ActivationRecord:
        """
        校验并转换已解析的 JSON 数据。

        参数:
            data: json.loads 的结果

        返回:
            ActivationRecord 实例
        """
        if not isinstance(data, dict):
            raise ConfigCorruptError(
                f"配置文件 {self.config_file} 必须是 JSON 对象，实际为 {type(data).__name__}"
            )

        unknown = sorted(set(data) - self.ALLOWED_FIELDS)
        if unknown:
            raise ConfigCorruptError(
                f"配置文件 {self.config_file} 包含无法识别的字段: {', '.join(unknown)}"
            )

        active_version = data.get(ACTIVE_VERSION_FIELD)
        if active_version is None:
            return ActivationRecord()

        if not isinstance(active_version, str):
            raise ConfigCorruptError(
                f"字段 '{ACTIVE_VERSION_FIELD}' 必须是字符串或 null，"
                f"实际为 {type(active_version).__name__}"
            )

        if not version_utils.is_valid_version(active_version):
            raise ConfigCorruptError(
                f"字段 '{ACTIVE_VERSION_FIELD}' 不是合法的版本号: {active_version}"
            )

        return ActivationRecord(active_version)

    def validate_record(self, record: ActivationRecord) -> bool:
        """
        验证激活记录的有效性。

        参数:
            record: 要验证的激活记录

        返回:
            验证通过返回 True

        抛出:
            ConfigValidationError: 记录无效时抛出
        """
        if not isinstance(record, ActivationRecord):
            raise ConfigValidationError(
                f"激活记录必须是 ActivationRecord 类型，实际为 {type(record).__name__}"
            )
        version = record.active_version
        if version is not None and not version_utils.is_valid_version(version):
            raise ConfigValidationError(f"激活记录中的版本号无效: {version}")
        return True

    def save(self, record: ActivationRecord) -> None:
        """
        整体覆盖保存激活记录。

        参数:
            record: 要保存的激活记录

        抛出:
            ConfigValidationError: 记录无效
            ConfigIoError: 目录创建或文件写入失败
        """
        self.validate_record(record)

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            _atomic_save_json(self.config_file, record.to_dict(), indent=2)
        except OSError as e:
            self.logger.error(f"保存配置失败: {e}")
            raise ConfigIoError(f"无法保存配置到 {self.config_file}: {e}") from e

        self.logger.debug(f"配置已保存到 {self.config_file}: {record.to_dict()}")
