"""
Query 短语改写服务

把用户查询串中的配置短语合并为单个词，再交给指定的下游解析器。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from autophrase.analysis.analyzer import PhraseAnalyzer
from autophrase.analysis.tokens import whitespace_tokenize
from autophrase.services.downstream_parsers import get_parser

_FIELD_GAP_RE = re.compile(r"\s:")
_AND_RE = re.compile(r"\bAND\b")
_OR_RE = re.compile(r"\bOR\b")


@dataclass(frozen=True)
class RewriteResult:
    original_query: str
    rewritten_query: str
    parser: str
    parsed_query: Dict[str, Any]


class QueryRewriter:
    def __init__(self, analyzer: PhraseAnalyzer, downstream_parser: str, ignore_case: bool = True) -> None:
        self._analyzer = analyzer
        self._downstream_parser = downstream_parser
        self._ignore_case = ignore_case

    def rewrite(self, query: str) -> str:
        """
        改写步骤：
        1) 把 " :" 收拢成 ": "，保护字段名
        2) "+"、"-" 后补空格，让操作符与词分开
        3) 忽略大小写时，先把 AND/OR 换成 &&/||，避免被转小写
        4) 空白切分 + 短语合并，用单空格重新拼接
        5) 还原 "+"、"-" 与 AND/OR
        """
        rewritten = query or ""
        while " :" in rewritten:
            rewritten = _FIELD_GAP_RE.sub(": ", rewritten)

        rewritten = rewritten.replace("+", "+ ").replace("-", "- ")

        if self._ignore_case:
            rewritten = _AND_RE.sub("&&", rewritten)
            rewritten = _OR_RE.sub("||", rewritten)

        rewritten = self._autophrase(rewritten)

        rewritten = rewritten.replace("+ ", "+").replace("- ", "-")

        if self._ignore_case:
            rewritten = rewritten.replace("&&", "AND").replace("||", "OR")

        return rewritten

    def _autophrase(self, text: str) -> str:
        words = whitespace_tokenize(text, lowercase=self._ignore_case)
        phrase_filter = self._analyzer.create_filter(words, emit_single_tokens=False)
        return " ".join(token.text for token in phrase_filter)

    def rewrite_and_parse(
        self,
        query: str,
        parser_name: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> RewriteResult:
        name = parser_name or self._downstream_parser
        parser = get_parser(name)
        rewritten = self.rewrite(query)
        logger.info(f"Query 短语改写: original={query!r}, rewritten={rewritten!r}, parser={name}")
        return RewriteResult(
            original_query=query,
            rewritten_query=rewritten,
            parser=name,
            parsed_query=parser.parse(rewritten, dict(params or {}, q=rewritten)),
        )
