from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

_WORD_RE = re.compile(r"\S+")


@dataclass(frozen=True)
class Word:
    """上游输入的单个词：文本 + 原文区间 [start_offset, end_offset)。"""

    text: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class OutputToken:
    text: str
    start_offset: int
    end_offset: int
    position_increment: int = 1
    is_phrase: bool = False
    word_count: int = 1

    @classmethod
    def from_word(cls, word: Word, position_increment: int = 1) -> "OutputToken":
        return cls(
            text=word.text,
            start_offset=word.start_offset,
            end_offset=word.end_offset,
            position_increment=position_increment,
        )


def whitespace_tokenize(text: str, lowercase: bool = False) -> Iterator[Word]:
    """
    按空白切分文本，逐个产出 Word（偏移量对应原文）。

    lowercase=True 时在产出前转小写（大小写归一属于上游职责）。
    """
    if not text:
        return
    for match in _WORD_RE.finditer(text):
        token = match.group(0)
        if lowercase:
            token = token.lower()
        yield Word(text=token, start_offset=match.start(), end_offset=match.end())
