"""
Pydantic schemas for question definitions on the wire.

Same shape for the catalog read endpoint and for the question list a batch
submitter sends along with its answers.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedback_engine.questions.models import QuestionDefinition, ScaleConfig


class ScaleSchema(BaseModel):
    """Numeric bounds of a scale question."""

    model_config = ConfigDict(populate_by_name=True)

    min: int | float
    max: int | float
    min_label: str | None = Field(None, alias="minLabel")
    max_label: str | None = Field(None, alias="maxLabel")


class QuestionSchema(BaseModel):
    """Schema for one question definition."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Question identifier")
    type: str = Field(..., min_length=1, description="Question type name")
    question: str = Field(default="", description="Question text")
    required: bool = False
    category: str | None = None
    options: list[str] = Field(default_factory=list)
    scale: ScaleSchema | None = None

    @field_validator("options", mode="before")
    @classmethod
    def stringify_options(cls, v: Any) -> Any:
        """Accept numeric option labels by turning them into strings."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) if not isinstance(item, str) else item for item in v]
        return v

    def to_definition(self, ordinal: int = 0) -> QuestionDefinition:
        scale = None
        if self.scale is not None:
            scale = ScaleConfig(
                min=self.scale.min,
                max=self.scale.max,
                min_label=self.scale.min_label,
                max_label=self.scale.max_label,
            )
        return QuestionDefinition(
            id=self.id,
            type=self.type,
            text=self.question,
            ordinal=ordinal,
            required=self.required,
            category=self.category,
            options=tuple(self.options),
            scale=scale,
        )

    @classmethod
    def from_definition(cls, definition: QuestionDefinition) -> "QuestionSchema":
        scale = None
        if definition.scale is not None:
            scale = ScaleSchema(
                min=definition.scale.min,
                max=definition.scale.max,
                min_label=definition.scale.min_label,
                max_label=definition.scale.max_label,
            )
        return cls(
            id=definition.id,
            type=definition.type,
            question=definition.text,
            required=definition.required,
            category=definition.category,
            options=list(definition.options),
            scale=scale,
        )
