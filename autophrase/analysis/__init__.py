"""
短语合并（auto phrasing）模块：
- 短语词典：首词索引，构建后只读共享
- 流式过滤器：把连续出现的配置短语合并为单个 token
- 短语来源：词表文件 + 数据库管理的短语
"""

from .analyzer import AnalyzerOptions, PhraseAnalyzer
from .dictionary import PhraseDictionary
from .errors import AutophraseError, InvariantViolation, PhraseSourceError
from .filter import FilterPhase, PhraseStreamFilter
from .manager import PhraseManager, get_phrase_manager
from .tokens import OutputToken, Word, whitespace_tokenize

__all__ = [
    "AnalyzerOptions",
    "AutophraseError",
    "FilterPhase",
    "InvariantViolation",
    "OutputToken",
    "PhraseAnalyzer",
    "PhraseDictionary",
    "PhraseManager",
    "PhraseSourceError",
    "PhraseStreamFilter",
    "Word",
    "get_phrase_manager",
    "whitespace_tokenize",
]
