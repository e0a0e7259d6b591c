from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from autophrase.analysis.errors import PhraseSourceError
from autophrase.analysis.manager import Operation
from autophrase.api import deps
from autophrase.schemas.autophrase_schema import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchResultResponse,
    PhraseListResponse,
    PhraseUpsertRequest,
    RewriteRequest,
    RewriteResponse,
    TokenSchema,
)
from autophrase.schemas.common import ApiResponse, SuccessResponse
from autophrase.services.autophrase_admin_service import AutophraseService

router = APIRouter()


def _normalize_scene_id(scene_id: object) -> int:
    """
    兼容两种调用方式：
    1) FastAPI 运行时：scene_id 为 int
    2) 单元测试/直接函数调用：scene_id 可能是 Query(...) 返回的参数对象
    """
    value = getattr(scene_id, "default", scene_id)
    return int(value)


@router.post("/phrase", response_model=ApiResponse[SuccessResponse])
def upsert_phrase(
    payload: PhraseUpsertRequest,
    scene_id: int = Query(0, ge=0, description="场景ID（默认0）"),
    db: Session = Depends(deps.get_db),
) -> ApiResponse[SuccessResponse]:
    """
    短语增删：对单个短语执行 ADD/DELETE。
    """
    service = AutophraseService(db)
    try:
        service.upsert_phrase(payload.phrase, payload.operation, scene_id=_normalize_scene_id(scene_id))
    except (ValueError, PhraseSourceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=SuccessResponse(success=True))


@router.post("/phrases/batch", response_model=ApiResponse[BatchResultResponse])
async def batch_upsert_phrases(
    file: UploadFile = File(..., description="包含短语列表的文本文件（UTF-8，每行一个）"),
    operation: str = Form(..., description="批量操作类型：ADD(新增), DELETE(删除)"),
    scene_id: int = Query(0, ge=0, description="场景ID（默认0）"),
    db: Session = Depends(deps.get_db),
) -> ApiResponse[BatchResultResponse]:
    """
    短语批量增删：上传文件批量处理短语。
    """
    service = AutophraseService(db)
    op = operation.strip().upper()
    if op not in {"ADD", "DELETE"}:
        raise HTTPException(status_code=400, detail="operation 仅支持 ADD/DELETE")
    try:
        success_count, fail_count = await service.batch_upsert_phrases(
            upload_file=file,
            operation=cast(Operation, op),
            scene_id=_normalize_scene_id(scene_id),
        )
    except (ValueError, PhraseSourceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(
        data=BatchResultResponse(success_count=success_count, fail_count=fail_count)
    )


@router.get("/phrases", response_model=ApiResponse[PhraseListResponse])
def list_phrases(
    scene_id: int = Query(0, ge=0, description="场景ID（默认0）"),
    db: Session = Depends(deps.get_db),
) -> ApiResponse[PhraseListResponse]:
    service = AutophraseService(db)
    try:
        phrases = service.list_phrases(scene_id=_normalize_scene_id(scene_id))
    except PhraseSourceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=PhraseListResponse(total=len(phrases), phrases=phrases))


@router.post("/analyze", response_model=ApiResponse[AnalyzeResponse])
def analyze_text(
    payload: AnalyzeRequest,
    scene_id: int = Query(0, ge=0, description="场景ID（默认0）"),
    db: Session = Depends(deps.get_db),
) -> ApiResponse[AnalyzeResponse]:
    """
    短语合并（调试接口）：返回空白切分 + 短语合并后的 token 序列。
    """
    service = AutophraseService(db)
    try:
        tokens = service.analyze(
            payload.text or "",
            emit_single_tokens=payload.emit_single_tokens,
            scene_id=_normalize_scene_id(scene_id),
        )
    except PhraseSourceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(
        data=AnalyzeResponse(
            tokens=[
                TokenSchema(
                    text=t.text,
                    start_offset=t.start_offset,
                    end_offset=t.end_offset,
                    position_increment=t.position_increment,
                    is_phrase=t.is_phrase,
                )
                for t in tokens
            ]
        )
    )


@router.post("/rewrite", response_model=ApiResponse[RewriteResponse])
def rewrite_query(
    payload: RewriteRequest,
    scene_id: int = Query(0, ge=0, description="场景ID（默认0）"),
    db: Session = Depends(deps.get_db),
) -> ApiResponse[RewriteResponse]:
    """
    Query 改写：合并查询串中的短语，并交给下游解析器生成 ES 查询。
    """
    service = AutophraseService(db)
    try:
        result = service.rewrite(
            payload.query,
            parser=payload.parser,
            params=payload.params,
            scene_id=_normalize_scene_id(scene_id),
        )
    except (ValueError, PhraseSourceError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(
        data=RewriteResponse(
            original_query=result.original_query,
            rewritten_query=result.rewritten_query,
            parser=result.parser,
            parsed_query=result.parsed_query,
        )
    )
