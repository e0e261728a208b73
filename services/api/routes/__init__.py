from fastapi import APIRouter
from .generate import router as generate_router
from .images import router as images_router
from .mask import router as mask_router
from .models import router as models_router
from .uploads import router as uploads_router

router = APIRouter(prefix="/v1")

@router.get("/", tags=["meta"])
def root() -> dict[str, str]:
    return {"service": "tryon-studio", "version": "v1"}

router.include_router(generate_router)
router.include_router(uploads_router)
router.include_router(images_router)
router.include_router(mask_router)
router.include_router(models_router)
