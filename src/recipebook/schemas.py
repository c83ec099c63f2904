"""Recipe data schemas shared by the store, the extractor and the API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipebook.scaling.recipes import clamp_multiplier


class Recipe(BaseModel):
    """Structured recipe as extracted from an uploaded document."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    description: str = ""
    prep_time: str = Field(default="", alias="prepTime")
    cook_time: str = Field(default="", alias="cookTime")
    servings: str = ""
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)

    @field_validator("title", "description", "prep_time", "cook_time", "servings", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Treat missing values as empty text."""
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def coerce_lines(cls, v: Any) -> list[str]:
        """Drop blank lines; the database stores empty lists as missing keys."""
        if not v:
            return []
        if isinstance(v, str):
            v = [v]
        elif isinstance(v, dict):
            # Sparse arrays come back from the database as index-keyed objects
            v = [v[k] for k in sorted(v, key=lambda k: int(k))]
        elif not isinstance(v, (list, tuple)):
            raise ValueError("expected a list of lines")
        return [str(line).strip() for line in v if line is not None and str(line).strip()]


class RecipeState(BaseModel):
    """A saved recipe with the user's scaling, rating, notes and cost."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    recipe: Recipe
    multiplier: float = Field(default=1.0, gt=0)
    rating: int = Field(default=0, ge=0, le=5)
    notes: str = ""
    cost: float = Field(default=0.0, ge=0)
    checked_ingredients: list[str] = Field(default_factory=list, alias="checkedIngredients")

    @field_validator("checked_ingredients", mode="before")
    @classmethod
    def coerce_checked(cls, v: Any) -> list[str]:
        """Handle the missing key the database leaves for an empty list."""
        if not v:
            return []
        if isinstance(v, dict):
            return [str(item) for item in v.values()]
        return [str(item) for item in v]

    @classmethod
    def new(cls, recipe_id: str, recipe: Recipe) -> "RecipeState":
        """Create the default state for a freshly imported recipe."""
        return cls(id=recipe_id, recipe=recipe)

    def to_record(self) -> dict[str, Any]:
        """Serialize for storage (the id is the record key, not a field)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class RecipeStateUpdate(BaseModel):
    """Partial update of the user-editable fields of a saved recipe."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    multiplier: float | None = None
    rating: int | None = Field(default=None, ge=0, le=5)
    notes: str | None = None
    cost: float | None = Field(default=None, ge=0)
    checked_ingredients: list[str] | None = Field(default=None, alias="checkedIngredients")

    @field_validator("multiplier")
    @classmethod
    def clamp(cls, v: float | None) -> float | None:
        """Never store a zero or negative multiplier."""
        if v is None:
            return None
        return clamp_multiplier(v)

    def to_fields(self) -> dict[str, Any]:
        """Get only the fields that were set, keyed as stored."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)

    @property
    def is_empty(self) -> bool:
        """Check if the update would change nothing."""
        return not self.to_fields()


class ScaledRecipe(BaseModel):
    """A saved recipe with its ingredient lines scaled for display."""

    model_config = ConfigDict(populate_by_name=True)

    state: RecipeState
    multiplier: float
    scaled_ingredients: list[str] = Field(alias="scaledIngredients")
    servings_count: int = Field(alias="servingsCount")
    cost_per_serving: float = Field(alias="costPerServing")


class InstructionsResult(BaseModel):
    """Instructions adjusted for a multiplier, or the originals with an error."""

    model_config = ConfigDict(populate_by_name=True)

    recipe_id: str = Field(alias="recipeId")
    multiplier: float
    instructions: list[str]
    rewritten: bool = False
    error: str | None = None
