"""
Macro estimate route.

POST /api/ai-estimate answers either with a single JSON estimate or, when the
body sets "stream": true, with an SSE stream of status/delta/result/error
events.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from estimator.models.request import EstimateRequest
from estimator.providers.base import ProviderError
from estimator.providers.registry import UnknownModelError, provider_registry
from estimator.services.estimation import (
    EstimateRequestError,
    EstimationService,
    prepare_request,
)
from estimator.services.storage import StorageError, create_signed_image_url
from estimator.utils.auth import require_access_token
from estimator.utils.exceptions import raise_bad_gateway, raise_bad_request, raise_internal_error
from estimator.utils.normalize import NormalizationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/ai-estimate")
async def ai_estimate(
    request: EstimateRequest,
    access_token: str = Depends(require_access_token),
):
    """
    POST /api/ai-estimate - estimate calories and macros

    Accepts free text, a list of weighed items, and/or the storage path of an
    uploaded photo. With "stream": true, returns SSE events:
    - status: {stage} progress marker
    - delta: {delta} raw model output fragment
    - result: normalized estimate {totals, items?, source, food_name?, notes, confidence?}
    - error: {error}
    """
    try:
        prepared = prepare_request(request)
    except EstimateRequestError as e:
        raise_bad_request(str(e))

    try:
        provider = provider_registry.get_provider(request.model)
    except UnknownModelError as e:
        raise_bad_request(str(e))
    if provider is None:
        raise_internal_error("Missing required field: OPENAI_API_KEY")

    image_url = None
    if prepared.image_path:
        try:
            image_url = await create_signed_image_url(prepared.image_path, access_token)
        except StorageError as e:
            logger.info(f"Signed URL error for imagePath: {prepared.image_path}")
            raise_bad_request(str(e))

    service = EstimationService(provider)

    if request.stream:
        return StreamingResponse(
            service.stream_estimate(prepared, image_url),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    try:
        return await service.estimate(prepared, image_url)
    except ProviderError as e:
        raise_bad_gateway(str(e))
    except NormalizationError as e:
        raise_bad_gateway(str(e))
