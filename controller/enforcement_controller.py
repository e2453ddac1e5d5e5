# controller/enforcement_controller.py
from fastapi import APIRouter, Depends, status
from model.api import (
    CaptureRequest,
    ClassifyBatchRequest,
    ClassifyBatchResponse,
    ClassifyRequest,
    ClassifyResponse,
    ComparisonsRequest,
    ComparisonsResponse,
    EnforceRequest,
    EnforceResponse,
    ExtractRequest,
    ExtractResponse,
    NoticeRequest,
    NoticeResponse,
    RecordExampleRequest,
    RecordExampleResponse,
    VerifyHashRequest,
    VerifyHashResponse,
)
from model.evidence import PageSnapshot
from service.enforcement_service import EnforcementService
from util.constants import InternalURIs
from controller.controller_dependencies import get_enforcement_service

enforcement_router = APIRouter()


@enforcement_router.post(InternalURIs.CLASSIFY, response_model=ClassifyResponse)
async def classify(
    payload: ClassifyRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> ClassifyResponse:
    verdict, promoted = await service.classify(
        payload.candidate, payload.product, payload.learnedExamples, payload.minConfidence
    )
    return ClassifyResponse(verdict=verdict, promoted=promoted)


@enforcement_router.post(InternalURIs.CLASSIFY_BATCH, response_model=ClassifyBatchResponse)
async def classify_batch(
    payload: ClassifyBatchRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> ClassifyBatchResponse:
    promoted = await service.classify_batch(
        payload.candidates, payload.product, payload.minConfidence
    )
    return ClassifyBatchResponse(
        promoted=promoted, filtered=len(payload.candidates) - len(promoted)
    )


@enforcement_router.post(
    InternalURIs.CAPTURE,
    response_model=PageSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def capture(
    payload: CaptureRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> PageSnapshot:
    return await service.capture(payload.url, payload.ownerId, payload.subjectId)


@enforcement_router.post(InternalURIs.EXTRACT, response_model=ExtractResponse)
async def extract(
    payload: ExtractRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> ExtractResponse:
    snapshot = await service.load_snapshot(payload.url, payload.storagePath, payload.html)
    evidence, analysis = await service.extract(
        snapshot, payload.product, analyze=payload.analyze, platform=payload.platform
    )
    return ExtractResponse(evidence=evidence, analysis=analysis)


@enforcement_router.post(InternalURIs.VERIFY_HASH, response_model=VerifyHashResponse)
async def verify_hash(
    payload: VerifyHashRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> VerifyHashResponse:
    valid, current = await service.verify_hash(payload.storagePath, payload.recordedHash)
    return VerifyHashResponse(valid=valid, currentHash=current)


@enforcement_router.post(InternalURIs.COMPARISONS, response_model=ComparisonsResponse)
async def comparisons(
    payload: ComparisonsRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> ComparisonsResponse:
    items = service.comparisons(payload.product, payload.sourceUrl, payload.evidence)
    return ComparisonsResponse(items=items)


@enforcement_router.post(InternalURIs.NOTICE, response_model=NoticeResponse)
async def notice(
    payload: NoticeRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> NoticeResponse:
    rendered, quality = service.notice(payload)
    return NoticeResponse(notice=rendered, quality=quality)


@enforcement_router.post(InternalURIs.ENFORCE, response_model=EnforceResponse)
async def enforce(
    payload: EnforceRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> EnforceResponse:
    record = await service.enforce(payload)
    return EnforceResponse(
        verdict=record.verdict,
        promoted=record.promoted,
        snapshot=record.snapshot,
        evidence=record.evidence,
        analysis=record.analysis,
        comparisonItems=record.comparison_items,
        notice=record.notice,
        quality=record.quality,
    )


@enforcement_router.post(
    InternalURIs.LEARNED_EXAMPLES,
    response_model=RecordExampleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_example(
    payload: RecordExampleRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> RecordExampleResponse:
    await service.record_example(
        payload.productId,
        payload.platform,
        payload.url,
        confirmed=payload.confirmed,
        note=payload.note,
    )
    return RecordExampleResponse(ok=True)
