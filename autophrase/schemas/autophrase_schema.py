from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


Operation = Literal["ADD", "DELETE"]


class PhraseUpsertRequest(BaseModel):
    phrase: str = Field(..., description="目标短语（至少两个词）")
    operation: Operation = Field(..., description="操作类型：ADD(新增), DELETE(删除)")

    model_config = ConfigDict(populate_by_name=True)


class BatchResultResponse(BaseModel):
    success_count: int = Field(..., alias="successCount", description="成功处理条数")
    fail_count: int = Field(..., alias="failCount", description="失败条数")

    model_config = ConfigDict(populate_by_name=True)


class PhraseListResponse(BaseModel):
    total: int = Field(..., description="短语总数（词表文件 + 数据库）")
    phrases: list[str] = Field(default_factory=list, description="短语列表")


class AnalyzeRequest(BaseModel):
    text: str = Field(..., description="待分析文本")
    emit_single_tokens: Optional[bool] = Field(
        default=None, alias="emitSingleTokens", description="是否同时输出原词；为空时使用配置"
    )

    model_config = ConfigDict(populate_by_name=True)


class TokenSchema(BaseModel):
    text: str
    start_offset: int = Field(..., alias="startOffset")
    end_offset: int = Field(..., alias="endOffset")
    position_increment: int = Field(..., alias="positionIncrement")
    is_phrase: bool = Field(default=False, alias="isPhrase")

    model_config = ConfigDict(populate_by_name=True)


class AnalyzeResponse(BaseModel):
    tokens: list[TokenSchema] = Field(..., description="分析结果")


class RewriteRequest(BaseModel):
    query: str = Field(..., description="原始查询串")
    parser: Optional[str] = Field(default=None, description="下游解析器名称；为空时使用配置")
    params: Dict[str, Any] = Field(default_factory=dict, description="透传给下游解析器的参数")


class RewriteResponse(BaseModel):
    original_query: str = Field(..., alias="originalQuery")
    rewritten_query: str = Field(..., alias="rewrittenQuery")
    parser: str = Field(..., description="实际使用的下游解析器")
    parsed_query: Dict[str, Any] = Field(..., alias="parsedQuery", description="下游解析结果（ES DSL）")

    model_config = ConfigDict(populate_by_name=True)
