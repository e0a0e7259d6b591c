from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Dict, FrozenSet, Iterable, List, Literal, Optional, Set, Tuple

from loguru import logger
from sqlalchemy.orm import Session

from autophrase.core.config import Settings, settings as default_settings

from .analyzer import AnalyzerOptions, PhraseAnalyzer
from .dictionary import PhraseDictionary
from .storage import DEFAULT_SCENE_ID, FilePhraseSource, SqlAlchemyPhraseStore, normalize_phrase
from .tokens import OutputToken


Operation = Literal["ADD", "DELETE"]

_DICTIONARY_CACHE_SIZE = 32
_dictionary_cache: Dict[Tuple[FrozenSet[str], bool], PhraseDictionary] = {}
_dictionary_cache_lock = RLock()


def build_shared_dictionary(phrases: Iterable[str], case_sensitive: bool) -> PhraseDictionary:
    """相同短语集合与大小写配置复用同一个只读词典，避免每次请求重建。"""
    key = (frozenset(phrases), case_sensitive)
    with _dictionary_cache_lock:
        dictionary = _dictionary_cache.get(key)
        if dictionary is None:
            if len(_dictionary_cache) >= _DICTIONARY_CACHE_SIZE:
                _dictionary_cache.pop(next(iter(_dictionary_cache)))
            dictionary = PhraseDictionary.build(key[0], case_sensitive=case_sensitive)
            _dictionary_cache[key] = dictionary
        return dictionary


@dataclass(frozen=True)
class BatchResult:
    success_count: int
    fail_count: int


class PhraseManager:
    """
    短语运行时管理器：
    - 合并词表文件与数据库中的短语，构建共享的短语词典
    - 管理数据库短语（增删/批量），变更后重建词典
    - 对外提供 analyze 能力（供 query 改写集成）
    """

    def __init__(
        self,
        store: SqlAlchemyPhraseStore,
        file_source: Optional[FilePhraseSource] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._store = store
        self._file_source = file_source
        self._config = config or default_settings
        self._file_phrases: Set[str] = file_source.load_phrases() if file_source else set()
        self._phrases: Set[str] = store.load_phrases()
        self._analyzer = self._build_analyzer()

    def _build_analyzer(self) -> PhraseAnalyzer:
        dictionary = build_shared_dictionary(
            self._file_phrases | self._phrases,
            case_sensitive=not self._config.AUTOPHRASE_IGNORE_CASE,
        )
        options = AnalyzerOptions(
            separator=self._config.AUTOPHRASE_REPLACE_WHITESPACE_WITH or None,
            emit_single_tokens=self._config.AUTOPHRASE_EMIT_SINGLE_TOKENS,
            lowercase=self._config.AUTOPHRASE_IGNORE_CASE,
        )
        return PhraseAnalyzer(dictionary, options)

    @property
    def analyzer(self) -> PhraseAnalyzer:
        return self._analyzer

    @property
    def dictionary(self) -> PhraseDictionary:
        return self._analyzer.dictionary

    def list_phrases(self) -> List[str]:
        return sorted(self._file_phrases | self._phrases)

    def upsert_phrase(self, phrase: str, operation: Operation) -> bool:
        phrase = normalize_phrase(phrase)
        if not phrase:
            raise ValueError("phrase 不能为空")
        if len(phrase.split(" ")) < 2:
            raise ValueError("phrase 至少包含两个词")
        if operation == "ADD":
            changed = self._store.add_phrase(phrase)
            if changed:
                self._phrases.add(phrase)
        elif operation == "DELETE":
            changed = self._store.delete_phrase(phrase)
            if changed:
                self._phrases.discard(phrase)
        else:
            raise ValueError("operation 仅支持 ADD/DELETE")

        if changed:
            logger.info(f"短语变更: operation={operation}, phrase={phrase}")
            self._analyzer = self._build_analyzer()
        return True

    def batch_upsert(self, phrases: List[str], operation: Operation) -> BatchResult:
        success, fail, changed = self._store.batch_upsert(phrases, operation)
        if changed:
            self._phrases = self._store.load_phrases()
            self._analyzer = self._build_analyzer()
        return BatchResult(success_count=success, fail_count=fail)

    def analyze(self, text: str, emit_single_tokens: Optional[bool] = None) -> List[OutputToken]:
        if not text:
            return []
        return self._analyzer.analyze(text, emit_single_tokens=emit_single_tokens)


def get_phrase_manager(
    db: Session,
    scene_id: int = DEFAULT_SCENE_ID,
    config: Optional[Settings] = None,
) -> PhraseManager:
    config = config or default_settings
    store = SqlAlchemyPhraseStore(db, scene_id=scene_id)
    file_source = FilePhraseSource(config.AUTOPHRASE_PHRASE_FILES)
    return PhraseManager(store, file_source=file_source, config=config)
