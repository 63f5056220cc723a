"""
GET /dimensions, GET /dimensions/{id} -- drillable hierarchy metadata.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from drilldown.api.dependencies import get_catalog
from drilldown.catalog.loader import DimensionCatalog

router = APIRouter()



class DimensionItem(BaseModel):
    id: str
    label: str
    levels: list[str]
    description: str


class DimensionsResponse(BaseModel):
    dimensions: list[DimensionItem]



@router.get("/dimensions", response_model=DimensionsResponse)
def list_dimensions(catalog: DimensionCatalog = Depends(get_catalog)) -> DimensionsResponse:
    """Return every hierarchy in catalog order."""
    return DimensionsResponse(
        dimensions=[DimensionItem(**d.to_dict()) for d in catalog.all()],
    )


@router.get("/dimensions/{dimension_id}", response_model=DimensionItem)
def get_dimension(dimension_id: str, catalog: DimensionCatalog = Depends(get_catalog)) -> DimensionItem:
    """Return one hierarchy by id."""
    dimension = catalog.by_id(dimension_id)
    if dimension is None:
        raise HTTPException(status_code=404, detail=f"Unknown dimension '{dimension_id}'")
    return DimensionItem(**dimension.to_dict())
