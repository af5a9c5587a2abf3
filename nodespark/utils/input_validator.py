"""
输入验证模块。

提供用户输入的验证和路径安全检查功能。
"""

import os
import re


class InputValidationError(Exception):
    """输入验证错误异常。"""
    pass


class InputValidator:
    """
    输入验证器类。

    提供版本说明符和文件路径的验证功能。
    """

    SPECIFIER_PATTERN = re.compile(r'^[0-9A-Za-z.+\-]+$')
    MAX_SPECIFIER_LENGTH = 100
    MAX_PATH_LENGTH = 1024

    @classmethod
    def validate_specifier(cls, specifier: str) -> bool:
        """
        验证版本说明符的基本格式。

        只检查长度和字符集，是否为合法语义化版本由版本工具模块判断。

        参数:
            specifier: 用户输入的版本说明符

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not specifier or not specifier.strip():
            raise InputValidationError("版本不能为空")

        if len(specifier) > cls.MAX_SPECIFIER_LENGTH:
            raise InputValidationError(f"版本不能超过 {cls.MAX_SPECIFIER_LENGTH} 个字符")

        if not cls.SPECIFIER_PATTERN.match(specifier.strip()):
            raise InputValidationError("版本只能包含字母、数字、点、加号和连字符")

        return True

    @classmethod
    def validate_archive_member(cls, name: str) -> bool:
        """
        验证压缩包成员路径，拒绝绝对路径和路径遍历。

        参数:
            name: 压缩包内的成员路径

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not name:
            raise InputValidationError("压缩包成员路径为空")

        if len(name) > cls.MAX_PATH_LENGTH:
            raise InputValidationError(f"路径不能超过 {cls.MAX_PATH_LENGTH} 个字符")

        normalized = name.replace("\\", "/")
        if normalized.startswith("/") or re.match(r'^[A-Za-z]:', normalized):
            raise InputValidationError(f"压缩包包含绝对路径: {name}")

        if ".." in normalized.split("/"):
            raise InputValidationError(f"压缩包包含非法路径: {name}")

        return True

    @classmethod
    def safe_join_path(cls, base_path: str, *paths: str) -> str:
        """
        安全连接路径，防止路径遍历。

        参数:
            base_path: 基础路径
            *paths: 要连接的路径部分

        返回:
            安全连接后的路径

        抛出:
            InputValidationError: 如果结果路径在 base_path 外部
        """
        base = os.path.abspath(base_path)
        joined = os.path.abspath(os.path.join(base, *paths))
        if joined != base and not joined.startswith(base + os.sep):
            raise InputValidationError(f"路径遍历检测: {joined}")
        return joined
