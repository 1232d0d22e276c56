"""FastAPI main application."""

import logging
from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import settings
from ..config.board_templates import TemplateNotFoundError, list_templates
from ..core.board_generator import generate_board
from ..core.models import (
    BoardStatistics,
    GenerationMode,
    GenerationParameters,
    RoadStyle,
    SpecialCategory,
    Tile,
)

# Configure logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Board Generator API",
    description="Procedural Monopoly-style board generation",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class BoardGenerationRequest(BaseModel):
    """Request to generate a board. Out-of-range values are clamped."""

    mode: GenerationMode = Field(GenerationMode.CLASSIC_TEMPLATE, description="Generation strategy")
    template_id: Optional[str] = Field(None, description="Template id or name (classic mode)")
    template_index: Optional[int] = Field(None, description="Template catalog index (classic mode)")
    road_style: RoadStyle = Field(RoadStyle.PATHS, description="Road engine for free-form mode")
    width: int = Field(default_factory=lambda: settings.default_board_width, description="Board width")
    height: int = Field(default_factory=lambda: settings.default_board_height, description="Board height")
    seed: Optional[int] = Field(None, description="Random seed for reproducible generation")
    road_density: float = Field(0.2, description="Road density")
    parcel_ratio: float = Field(0.3, description="Parcel ratio")
    parcel_2x2_ratio: float = Field(0.15, description="2x2 parcel probability")
    min_parcel_spacing: int = Field(0, description="Minimum parcel spacing")
    special_tile_ratio: float = Field(0.2, description="Special tile ratio")
    special_tile_categories: List[SpecialCategory] = Field(default_factory=list, description="Special tile categories")
    traffic_rounds: int = Field(default_factory=lambda: settings.default_traffic_rounds, description="Monte-Carlo rounds")
    start_positions: List[List[int]] = Field(default_factory=lambda: [[0, 0]], description="Simulation start cells [x, y]")
    include_tiles: bool = Field(False, description="Include the full tile list in the response")


class TemplateSummary(BaseModel):
    """Catalog entry."""

    id: str
    name: str
    description: str
    rings: List[str]
    bridges: int


class BoardResponse(BaseModel):
    """Summary of a generated board."""

    seed: int
    mode: GenerationMode
    width: int
    height: int
    template_id: Optional[str] = None
    road_style: Optional[RoadStyle] = None
    shape: Optional[str] = None
    statistics: BoardStatistics
    regions: List[Dict[str, object]]
    tiles: Optional[List[Tile]] = None


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Board Generator API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/templates", response_model=List[TemplateSummary])
async def get_templates():
    """List the board template catalog."""
    return [TemplateSummary(**summary) for summary in list_templates()]


@app.post("/boards/generate", response_model=BoardResponse)
def generate(request: BoardGenerationRequest):
    """
    Generate a board synchronously.

    Returns the board summary and statistics; the full tile list is
    included when ``include_tiles`` is set.
    """
    logger.info("Board generation requested", request=request.model_dump(mode="json"))

    values = request.model_dump(exclude={"include_tiles"})
    values["start_positions"] = [tuple(pos[:2]) for pos in request.start_positions if len(pos) >= 2]
    params = GenerationParameters(**values)

    try:
        result = generate_board(params)
    except TemplateNotFoundError as e:
        logger.warning("Template not found", template_id=e.template_id)
        raise HTTPException(status_code=404, detail=str(e))

    return BoardResponse(
        seed=result.seed,
        mode=result.mode,
        width=result.width,
        height=result.height,
        template_id=result.template_id,
        road_style=result.road_style,
        shape=result.shape,
        statistics=result.statistics,
        regions=[
            {
                "id": region.id,
                "color_group": region.color_group,
                "cells": len(region.cells),
                "parcels": len(region.parcels),
                "centroid": list(region.centroid),
            }
            for region in result.regions
        ],
        tiles=list(result.tiles) if request.include_tiles else None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
