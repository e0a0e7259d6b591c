from __future__ import annotations

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from loguru import logger

_EMPTY: FrozenSet[str] = frozenset()


class PhraseDictionary:
    """
    短语词典：首词 -> 以该词开头的短语集合。

    - 构建后不可变，可被多个过滤器实例并发只读
    - 短语统一为单空格拼接的字符串；不区分大小写时用 casefold() 归一
    - 少于两个词的条目不是短语，构建时忽略
    """

    def __init__(self, entries: Mapping[str, FrozenSet[str]], case_sensitive: bool = True) -> None:
        self._entries: Mapping[str, FrozenSet[str]] = MappingProxyType(dict(entries))
        self._case_sensitive = case_sensitive
        self._phrase_count = sum(len(phrases) for phrases in self._entries.values())

    @classmethod
    def build(
        cls,
        phrases: Optional[Iterable[str]],
        case_sensitive: bool = True,
    ) -> "PhraseDictionary":
        if phrases is None:
            logger.warning("未配置短语列表，短语合并退化为直通")
            return cls({}, case_sensitive=case_sensitive)

        grouped: Dict[str, Set[str]] = {}
        skipped = 0
        for raw in phrases:
            words = (raw or "").split()
            if len(words) < 2:
                skipped += 1
                continue
            phrase = " ".join(words)
            if not case_sensitive:
                phrase = phrase.casefold()
            first = phrase.split(" ", 1)[0]
            grouped.setdefault(first, set()).add(phrase)

        if skipped:
            logger.debug(f"忽略非短语条目: count={skipped}")

        entries = {first: frozenset(items) for first, items in grouped.items()}
        dictionary = cls(entries, case_sensitive=case_sensitive)
        logger.info(
            f"短语词典构建完成: phrase_count={len(dictionary)}, "
            f"first_words={len(entries)}, case_sensitive={case_sensitive}"
        )
        return dictionary

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    @property
    def is_empty(self) -> bool:
        return self._phrase_count == 0

    def normalize(self, text: str) -> str:
        return text if self._case_sensitive else text.casefold()

    def lookup(self, word: str) -> FrozenSet[str]:
        return self._entries.get(self.normalize(word), _EMPTY)

    def starts_phrase(self, word: str) -> bool:
        return self.normalize(word) in self._entries

    def phrases(self) -> List[str]:
        return sorted(p for items in self._entries.values() for p in items)

    def __contains__(self, phrase: object) -> bool:
        if not isinstance(phrase, str):
            return False
        normalized = self.normalize(" ".join(phrase.split()))
        return normalized in self._entries.get(normalized.split(" ", 1)[0], _EMPTY)

    def __len__(self) -> int:
        return self._phrase_count
