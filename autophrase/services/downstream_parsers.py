"""下游查询解析器：把改写后的查询串转换为 Elasticsearch 查询 DSL。"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class QueryParser:
    name: str = ""

    def parse(self, query: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        raise NotImplementedError


class QueryStringParser(QueryParser):
    """Lucene 语法查询（保留 +/-/AND/OR/field: 等操作符）。"""

    name = "query_string"

    def __init__(self, default_field: str = "content", default_operator: str = "OR") -> None:
        self.default_field = default_field
        self.default_operator = default_operator

    def parse(self, query: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = params or {}
        body = {
            "query": {
                "query_string": {
                    "query": query,
                    "default_field": params.get("df", self.default_field),
                    "default_operator": params.get("q.op", self.default_operator),
                }
            }
        }
        logger.debug(f"query_string 查询构造: query={query}, DSL={body}")
        return body


class MultiMatchParser(QueryParser):
    """多字段 multi_match 查询，合并后的短语作为单个词参与匹配。"""

    name = "multi_match"

    def __init__(self, fields: Optional[List[str]] = None, type: str = "best_fields") -> None:
        self.fields = fields or ["content"]
        self.type = type

    def parse(self, query: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = params or {}
        fields = params.get("qf") or self.fields
        if isinstance(fields, str):
            fields = fields.split()
        body = {
            "query": {
                "multi_match": {
                    "query": query,
                    "fields": list(fields),
                    "type": params.get("type", self.type),
                }
            }
        }
        logger.debug(f"multi_match 查询构造: query={query}, DSL={body}")
        return body


_REGISTRY: Dict[str, Callable[[], QueryParser]] = {
    QueryStringParser.name: QueryStringParser,
    MultiMatchParser.name: MultiMatchParser,
}


def register_parser(name: str, factory: Callable[[], QueryParser]) -> None:
    name = name.strip()
    if not name:
        raise ValueError("parser 名称不能为空")
    _REGISTRY[name] = factory


def list_parsers() -> List[str]:
    return sorted(_REGISTRY.keys())


def get_parser(name: str) -> QueryParser:
    name = (name or "").strip()
    if name not in _REGISTRY:
        supported = ", ".join(list_parsers())
        raise ValueError(f"不支持的下游解析器: {name}（可选：{supported}）")
    return _REGISTRY[name]()
