"""
短语分析异常定义

层级：
    AutophraseError
    ├── InvariantViolation   内部状态机缺陷（不应在正确实现中出现）
    └── PhraseSourceError    短语资源无法解析
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AutophraseError(Exception):
    """autophrase 相关错误的基类。"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvariantViolation(AutophraseError):
    """
    状态机簿记出现不可能的状态（如负的位置增量、回放顺序错乱）。

    属于实现缺陷，不做恢复，直接向上抛出。
    """


class PhraseSourceError(AutophraseError):
    """短语文件存在但无法按 UTF-8 读取。缺失/为空的资源不算错误。"""
