"""
==============================================================================
Image Upload Endpoints
==============================================================================

Converts an uploaded picture into a preview reference that can be sent
as image_reference when creating or editing a product.

==============================================================================
"""

from fastapi import APIRouter, Depends, File, UploadFile

from tracker.core.dependencies import get_image_compressor
from tracker.imaging import ImageCompressor


router = APIRouter(prefix="/images", tags=["Images"])


@router.post("")
async def upload_image(
    file: UploadFile = File(...),
    compressor: ImageCompressor = Depends(get_image_compressor)
):
    """
    Downscale and encode an uploaded image.

    Returns the JPEG data URL to store on the product.
    """
    raw = await file.read()
    reference = compressor.compress(raw)
    return {
        "success": True,
        "filename": file.filename,
        "original_bytes": len(raw),
        "image_reference": reference
    }
