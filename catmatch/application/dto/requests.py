"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
File content for uploads is handled via UploadFile in the API layer.
"""

from pydantic import BaseModel, Field

from catmatch.core.entities.match import ReviewAction
from catmatch.core.entities.upload import ColumnMapping


class ProcessUploadRequest(BaseModel):
    """Column mapping chosen by the user before processing starts."""

    description_column: str = Field(
        ...,
        min_length=1,
        description="Header of the column holding the material description",
        examples=["Descrição", "description"],
    )
    quantity_column: str | None = Field(
        default=None,
        description="Header of the quantity column",
        examples=["Qtd", "quantity"],
    )
    unit_column: str | None = Field(
        default=None,
        description="Header of the unit column",
        examples=["Un", "unit"],
    )

    def to_mapping(self) -> ColumnMapping:
        return ColumnMapping(
            description_column=self.description_column,
            quantity_column=self.quantity_column,
            unit_column=self.unit_column,
        )


class ReviewRequest(BaseModel):
    """Review decision for one match candidate."""

    action: ReviewAction = Field(..., description="approve, reject or manual")
    material_id: str | None = Field(
        default=None,
        description="Catalog entry id; required for manual assignment",
    )
