from fastapi import APIRouter


router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint"""
    from estimator.config import settings
    from estimator.providers.registry import provider_registry

    return {
        "status": "healthy",
        "model": settings.openai_model,
        "models": settings.model_names,
        "provider_configured": bool(settings.openai_api_key),
        "active_streams": provider_registry.active_streams,
    }
