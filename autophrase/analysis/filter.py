"""
短语合并过滤器（auto phrasing）

逐个消费上游的词，识别词典中配置的多词短语，并把命中的短语合并为一个 token 输出；
短语之外的词原样透传。支持重叠短语：

- 总是优先“延伸仍有可能时可达的最长短语”
- 候选短语最终失败时，已消费的词按原顺序、原偏移回放
- 一个短语的末词可以作为下一个短语的首词（"income tax refund" -> income_tax, tax_refund）

驱动方式为单层循环 + 显式状态机，不做递归，长串不匹配输入也不会增长调用栈。
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from .dictionary import PhraseDictionary
from .errors import InvariantViolation
from .tokens import OutputToken, Word


class FilterPhase(Enum):
    IDLE = "idle"
    MATCHING = "matching"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class MatchState:
    """单个过滤器实例的全部可变状态，reset() 时整体替换。"""

    phase: FilterPhase = FilterPhase.IDLE
    candidates: FrozenSet[str] = frozenset()
    buffer: List[Word] = field(default_factory=list)
    key: str = ""
    # buffer[0] 是上一个已合并短语的末词，失败时不再单独回放
    carried: bool = False
    # 最近一次完整命中的短语长度（词数），0 表示没有
    last_valid: int = 0
    backlog: Deque[Word] = field(default_factory=deque)
    ready: Deque[OutputToken] = field(default_factory=deque)
    exhausted: bool = False
    position: int = -1

    def clear_attempt(self) -> None:
        self.candidates = frozenset()
        self.buffer = []
        self.key = ""
        self.carried = False
        self.last_valid = 0


class PhraseStreamFilter:
    """
    拉取式短语合并过滤器：反复调用 next_token()，返回 None 表示结束；
    也可以直接当作迭代器使用。

    Args:
        dictionary: 已构建的短语词典（只读共享）
        words: 上游词序列，偏移量需单调不减
        separator: 合并短语时的连接字符；None/"" 表示直接拼接
        emit_single_tokens: 为 True 时原词全部透传，合并短语作为额外 token 插入
    """

    def __init__(
        self,
        dictionary: PhraseDictionary,
        words: Optional[Iterable[Word]] = None,
        separator: Optional[str] = None,
        emit_single_tokens: bool = False,
    ) -> None:
        if separator is not None and len(separator) > 1:
            raise ValueError(f"separator 只能是单个字符: {separator!r}")
        self._dictionary = dictionary
        self._joiner = separator or ""
        self._emit_single_tokens = emit_single_tokens
        self._words: Iterator[Word] = iter(words if words is not None else ())
        self._state = MatchState()

    @property
    def phase(self) -> FilterPhase:
        return self._state.phase

    def reset(self, words: Optional[Iterable[Word]] = None) -> None:
        """清空全部状态；传入 words 时绑定新的上游，实例可复用。"""
        if words is not None:
            self._words = iter(words)
        self._state = MatchState()

    def __iter__(self) -> "PhraseStreamFilter":
        return self

    def __next__(self) -> OutputToken:
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    def next_token(self) -> Optional[OutputToken]:
        state = self._state
        while not state.ready:
            if state.phase is FilterPhase.DONE:
                return None
            self._step(state)
        return state.ready.popleft()

    def _step(self, state: MatchState) -> None:
        if state.phase is FilterPhase.DRAINING:
            self._drain(state)
            return

        word = self._pull(state)
        if word is None:
            self._finish(state)
        elif state.phase is FilterPhase.IDLE:
            self._start(state, word)
        else:
            self._extend(state, word)

    def _pull(self, state: MatchState) -> Optional[Word]:
        if state.exhausted:
            return None
        word = next(self._words, None)
        if word is None:
            state.exhausted = True
        return word

    def _start(self, state: MatchState, word: Word) -> None:
        candidates = self._dictionary.lookup(word.text)
        if candidates:
            self._seed(state, word, candidates, carried=False)
        else:
            self._emit_word(state, word)

    def _seed(self, state: MatchState, word: Word, candidates: FrozenSet[str], carried: bool) -> None:
        logger.opt(lazy=True).debug("短语候选开始: word={}, candidates={}", lambda: word.text, lambda: len(candidates))
        state.candidates = candidates
        state.buffer = [word]
        state.key = self._dictionary.normalize(word.text)
        state.carried = carried
        state.last_valid = 0
        state.phase = FilterPhase.MATCHING

    def _extend(self, state: MatchState, word: Word) -> None:
        state.buffer.append(word)
        key = f"{state.key} {self._dictionary.normalize(word.text)}"
        prefix = key + " "
        full = key in state.candidates
        extendable = frozenset(p for p in state.candidates if p.startswith(prefix))

        if full and not extendable:
            state.last_valid = len(state.buffer)
            self._settle(state, state.buffer)
            candidates = self._dictionary.lookup(word.text)
            if candidates:
                self._seed(state, word, candidates, carried=True)
            else:
                state.phase = FilterPhase.IDLE
            return

        if not full and not extendable:
            self._abandon(state, word)
            return

        state.key = key
        state.candidates = extendable
        if full:
            # 更长的重叠短语仍可能命中，先记下这次命中
            state.last_valid = len(state.buffer)

    def _abandon(self, state: MatchState, word: Word) -> None:
        self._settle(state, state.buffer[:-1])

        candidates = self._dictionary.lookup(word.text)
        if candidates:
            self._seed(state, word, candidates, carried=False)
        else:
            self._replay(state, [word])

        if state.backlog:
            state.phase = FilterPhase.DRAINING
        elif not state.buffer:
            state.phase = FilterPhase.IDLE

    def _finish(self, state: MatchState) -> None:
        if state.phase is FilterPhase.MATCHING:
            self._settle(state, state.buffer)
        state.phase = FilterPhase.DRAINING if state.backlog else FilterPhase.DONE

    def _settle(self, state: MatchState, consumed: Sequence[Word]) -> None:
        """
        结束当前尝试：输出最近一次完整命中，其余已消费的词进入回放队列。

        emit_single_tokens 模式下原词在此按顺序直接输出，合并短语紧跟在其末词之后，
        与末词共享同一位置。
        """
        matched = state.last_valid
        # 沿用自上一个短语的首词已经输出过
        skip = 1 if state.carried else 0
        state.clear_attempt()

        if self._emit_single_tokens:
            for index, word in enumerate(consumed):
                if index >= skip:
                    self._emit_word(state, word)
                if matched and index == matched - 1:
                    self._emit_phrase(state, consumed[:matched])
            return

        if matched:
            self._emit_phrase(state, consumed[:matched])
            leftovers = consumed[matched:]
        else:
            leftovers = consumed[skip:]
        if leftovers:
            span = (consumed[0].start_offset, consumed[-1].end_offset)
            self._replay(state, leftovers, span=span)

    def _replay(
        self,
        state: MatchState,
        words: Sequence[Word],
        span: Optional[Tuple[int, int]] = None,
    ) -> None:
        if not words:
            return
        if self._emit_single_tokens:
            for word in words:
                self._emit_word(state, word)
            return
        logger.opt(lazy=True).debug("短语未命中，回放: {}", lambda: [w.text for w in words])
        previous = state.backlog[-1] if state.backlog else None
        for word in words:
            if previous is not None and word.start_offset < previous.start_offset:
                raise InvariantViolation(
                    "回放词顺序错乱",
                    details={"previous": previous, "word": word},
                )
            if span is not None and not (span[0] <= word.start_offset and word.end_offset <= span[1]):
                raise InvariantViolation(
                    "回放词超出缓冲区范围",
                    details={"span": span, "word": word},
                )
            previous = word
        state.backlog.extend(words)

    def _drain(self, state: MatchState) -> None:
        if state.backlog:
            self._emit_word(state, state.backlog.popleft())
        if state.backlog:
            return
        if state.buffer:
            state.phase = FilterPhase.MATCHING
        elif state.exhausted:
            state.phase = FilterPhase.DONE
        else:
            state.phase = FilterPhase.IDLE

    def _emit_word(self, state: MatchState, word: Word) -> None:
        self._push(state, OutputToken.from_word(word))

    def _emit_phrase(self, state: MatchState, words: Sequence[Word]) -> None:
        token = OutputToken(
            text=self._joiner.join(w.text for w in words),
            start_offset=words[0].start_offset,
            end_offset=words[-1].end_offset,
            position_increment=0 if self._emit_single_tokens else 1,
            is_phrase=True,
            word_count=len(words),
        )
        logger.opt(lazy=True).debug("短语合并: {}", lambda: token.text)
        self._push(state, token)

    def _push(self, state: MatchState, token: OutputToken) -> None:
        position = state.position + token.position_increment
        if token.position_increment < 0 or position < 0:
            raise InvariantViolation(
                "位置增量非法",
                details={"token": token, "position": state.position},
            )
        state.position = position
        state.ready.append(token)
