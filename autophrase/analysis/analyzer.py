from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .dictionary import PhraseDictionary
from .filter import PhraseStreamFilter
from .tokens import OutputToken, Word, whitespace_tokenize


@dataclass(frozen=True)
class AnalyzerOptions:
    separator: Optional[str] = "_"
    emit_single_tokens: bool = False
    lowercase: bool = False


class PhraseAnalyzer:
    """空白切分 + 短语合并的组合分析链。词典共享，过滤器按次新建。"""

    def __init__(self, dictionary: PhraseDictionary, options: AnalyzerOptions = AnalyzerOptions()) -> None:
        self._dictionary = dictionary
        self._options = options

    @property
    def dictionary(self) -> PhraseDictionary:
        return self._dictionary

    @property
    def options(self) -> AnalyzerOptions:
        return self._options

    def create_filter(
        self,
        words: Iterable[Word],
        emit_single_tokens: Optional[bool] = None,
    ) -> PhraseStreamFilter:
        if emit_single_tokens is None:
            emit_single_tokens = self._options.emit_single_tokens
        return PhraseStreamFilter(
            self._dictionary,
            words,
            separator=self._options.separator,
            emit_single_tokens=emit_single_tokens,
        )

    def analyze(self, text: str, emit_single_tokens: Optional[bool] = None) -> List[OutputToken]:
        words = whitespace_tokenize(text, lowercase=self._options.lowercase)
        return list(self.create_filter(words, emit_single_tokens=emit_single_tokens))
