from __future__ import annotations

from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from autophrase.analysis import get_phrase_manager
from autophrase.analysis.manager import Operation
from autophrase.analysis.storage import DEFAULT_SCENE_ID
from autophrase.analysis.tokens import OutputToken
from autophrase.core.config import Settings, settings as default_settings
from autophrase.services.query_rewriter import QueryRewriter, RewriteResult


class AutophraseService:
    """
    短语合并服务：
    - 管理数据库短语（按 scene_id 隔离）
    - 文本分析、query 改写（使用当前场景的短语词典）
    """

    def __init__(self, db: Session, config: Optional[Settings] = None) -> None:
        self._db = db
        self._config = config or default_settings

    def upsert_phrase(self, phrase: str, operation: Operation, scene_id: int = DEFAULT_SCENE_ID) -> None:
        manager = get_phrase_manager(self._db, scene_id=int(scene_id), config=self._config)
        manager.upsert_phrase(phrase, operation)

    async def batch_upsert_phrases(
        self,
        upload_file: UploadFile,
        operation: Operation,
        scene_id: int = DEFAULT_SCENE_ID,
    ) -> tuple[int, int]:
        content = await upload_file.read()
        try:
            text = content.decode("utf-8")
        except Exception as exc:
            raise ValueError("文件编码必须为 UTF-8") from exc

        phrases = [line.strip() for line in text.splitlines()]
        manager = get_phrase_manager(self._db, scene_id=int(scene_id), config=self._config)
        result = manager.batch_upsert(phrases, operation)
        return result.success_count, result.fail_count

    def list_phrases(self, scene_id: int = DEFAULT_SCENE_ID) -> List[str]:
        manager = get_phrase_manager(self._db, scene_id=int(scene_id), config=self._config)
        return manager.list_phrases()

    def analyze(
        self,
        text: str,
        emit_single_tokens: Optional[bool] = None,
        scene_id: int = DEFAULT_SCENE_ID,
    ) -> List[OutputToken]:
        manager = get_phrase_manager(self._db, scene_id=int(scene_id), config=self._config)
        return manager.analyze(text, emit_single_tokens=emit_single_tokens)

    def rewrite(
        self,
        query: str,
        parser: Optional[str] = None,
        params: Optional[dict] = None,
        scene_id: int = DEFAULT_SCENE_ID,
    ) -> RewriteResult:
        manager = get_phrase_manager(self._db, scene_id=int(scene_id), config=self._config)
        rewriter = QueryRewriter(
            manager.analyzer,
            downstream_parser=self._config.AUTOPHRASE_DOWNSTREAM_PARSER,
            ignore_case=self._config.AUTOPHRASE_IGNORE_CASE,
        )
        return rewriter.rewrite_and_parse(query, parser_name=parser, params=params)
