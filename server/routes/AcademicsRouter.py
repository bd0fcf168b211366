import logging
from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime
import uuid

from database.DB import get_db
from models.models import Academic, MaterialCategory
from .dependencies import get_current_user, require_senior

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class MaterialCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    url: str = Field(min_length=1)
    category: MaterialCategory
    subject: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[str] = None


@router.get('')
async def get_materials(
    user: dict = Depends(get_current_user),
    category: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    semester: Optional[str] = Query(None),
    db = Depends(get_db)
):
    """Study materials, newest first; "All" disables a filter"""
    query = {}
    for field, value in (("category", category), ("subject", subject), ("semester", semester)):
        if value and value != "All":
            query[field] = value

    result = await db.find_many("academics", query, sort=[("createdAt", -1)])
    return JSONResponse(content={"materials": result["data"]})


@router.post('')
async def create_material(payload: MaterialCreate, user: dict = Depends(require_senior), db = Depends(get_db)):
    """Share a paper, solution or study material by link (EB/EC/Core only)"""
    material = Academic(
        id=str(uuid.uuid4()),
        createdBy=user.get("name"),
        createdAt=datetime.utcnow(),
        **payload.model_dump()
    )

    result = await db.add("academics", material.model_dump())
    if result["status"] != 200:
        raise HTTPException(status_code=500, detail="Failed to add material")
    logger.info("%s material %s added by %s", material.category, material.id, user.get("email"))
    return JSONResponse(status_code=201, content={"message": "Material added successfully", "material": result["data"]})


@router.delete('/{material_id}')
async def delete_material(material_id: str, user: dict = Depends(require_senior), db = Depends(get_db)):
    result = await db.delete("academics", {"id": material_id})
    if result["deleted_count"] == 0:
        raise HTTPException(status_code=404, detail="Material not found")
    return JSONResponse(content={"message": "Material deleted successfully"})
