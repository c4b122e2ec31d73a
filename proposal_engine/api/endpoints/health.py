"""
Health check endpoints.

/health          liveness only
/health/detail   text-generation backends and proposal defaults
/health/rates    whether the pricing tables load and validate
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from proposal_engine.config import get_settings
from proposal_engine.exceptions import ConfigurationError
from proposal_engine.layers.layer1_pricing import get_rate_config

router = APIRouter()


@router.get("")
async def health_check():
    return {"status": "healthy"}


@router.get("/detail")
async def health_check_detail():
    """
    Which provider narratives go to, the fallback order for each backend,
    and whether its key is present. Keys themselves are never echoed.
    """
    settings = get_settings()
    backends = {
        "gemini": (settings.gemini_model_order, settings.gemini_api_key),
        "groq": (settings.groq_model_order, settings.groq_api_key),
    }
    return {
        "status": "healthy",
        "narrative": {
            "default_provider": settings.default_provider,
            "backends": {
                name: {"models": list(models), "api_key_configured": bool(key)}
                for name, (models, key) in backends.items()
            },
        },
        "proposal_defaults": {
            "platform": settings.default_platform,
            "validity_days": settings.default_validity_days,
        },
    }


@router.get("/rates")
async def health_check_rates():
    """Pricing can only run when every rate table validates; 503 otherwise."""
    try:
        rates = get_rate_config()
    except ConfigurationError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "error_code": e.error_code,
                "field_path": e.field_path,
                "message": e.message,
            },
        )

    base = rates.base_rates
    return {
        "status": "healthy",
        "currency": base.currency,
        "skills": sorted(base.hourly_rates),
        "minimum_project_value": base.minimum_project_value,
        "discount_stacking": rates.discounts.discount_stacking.value,
    }
