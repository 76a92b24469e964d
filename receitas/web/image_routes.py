from typing import Optional

from fastapi import APIRouter

from receitas.services.image_service import ImageUrlResolver
from receitas.utils.formatting import initials

router = APIRouter(prefix="/api/images")


@router.get("/resolve")
async def resolve_image(ref: Optional[str] = None, name: Optional[str] = None):
    """Primary URL, ordered fallbacks and the initials placeholder."""
    resolver = ImageUrlResolver()
    return {
        "primary": resolver.primary_url(ref),
        "fallbacks": resolver.fallback_chain(ref),
        "placeholder": initials(name),
    }
