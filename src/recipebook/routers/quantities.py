"""API routes for scaling free-text ingredient lines."""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from recipebook.logging_config import get_logger
from recipebook.scaling.quantities import parse_quantity
from recipebook.scaling.recipes import scale_ingredients

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/quantities", tags=["quantities"])


class ScaleRequest(BaseModel):
    """Ingredient lines to scale by one multiplier."""

    lines: list[str] = Field(max_length=500)
    multiplier: float = Field(gt=0)


class ScaleResponse(BaseModel):
    """Scaled ingredient lines, in request order."""

    lines: list[str]
    multiplier: float


class ParseRequest(BaseModel):
    """A single ingredient line."""

    line: str


class ParseResponse(BaseModel):
    """Leading quantity of an ingredient line and the remaining text."""

    model_config = ConfigDict(populate_by_name=True)

    quantity: float
    unit_and_name: str = Field(alias="unitAndName")
    found: bool


@router.post("/scale", response_model=ScaleResponse)
async def scale_lines(request: ScaleRequest) -> ScaleResponse:
    """Scale ingredient lines without saving anything."""
    logger.debug(f"Scaling {len(request.lines)} lines by {request.multiplier}")
    return ScaleResponse(
        lines=scale_ingredients(request.lines, request.multiplier),
        multiplier=request.multiplier,
    )


@router.post("/parse", response_model=ParseResponse)
async def parse_line(request: ParseRequest) -> ParseResponse:
    """Parse the leading quantity of an ingredient line."""
    parsed = parse_quantity(request.line)
    return ParseResponse(
        quantity=parsed.value,
        unit_and_name=parsed.remainder,
        found=parsed.found,
    )
