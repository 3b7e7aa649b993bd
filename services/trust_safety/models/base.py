"""
Base Document Models
====================

Common base for persisted entities and the shared risk level enum.

Version: 0.1.0
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shared.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def new_id() -> str:
    return uuid.uuid4().hex


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix naive and aware."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


class RiskLevel(str, Enum):
    """Ordered risk categories (low < medium < high < critical)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def max_of(cls, *levels: "RiskLevel") -> "RiskLevel":
        return max_risk(*levels)


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


def max_risk(*levels: RiskLevel) -> RiskLevel:
    """Most severe of the given levels."""
    return max(levels, key=lambda level: level.rank)


class DocumentModel(BaseModel):
    """
    Base for entities stored in the document store.

    The API exposes ``id``; storage uses ``_id``. ``version`` backs
    optimistic concurrency and is bumped by the repository on every write.
    """

    id: str = Field(default_factory=new_id)
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage (enums as values, computed fields dropped)."""
        data = self.model_dump(mode="python", exclude=set(type(self).model_computed_fields))
        data["_id"] = data.pop("id")
        return _enum_values(data)

    def with_changes(self: M, changes: dict[str, Any]) -> M:
        """Copy with changes applied and the whole model revalidated."""
        data = self.model_dump(exclude=set(type(self).model_computed_fields))
        data.update(changes)
        return parse_model(type(self), data)

    @classmethod
    def from_document(cls: type[M], document: dict[str, Any]) -> M:
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        for name in cls.model_computed_fields:
            data.pop(name, None)
        return cls.model_validate(data)


class SoftDeleteMixin(BaseModel):
    """Soft delete flag, timestamp and actor."""

    is_deleted: bool = False
    deleted_at: datetime | None = None
    deleted_by: str | None = None


def _enum_values(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else k): _enum_values(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [_enum_values(v) for v in value]
    return value


def parse_model(model_cls: type[M], data: dict[str, Any]) -> M:
    """Validate data into a model, surfacing failures as domain ValidationError."""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(
            f"Invalid {model_cls.__name__}: {errors[0]['field']}: {errors[0]['message']}",
            details={"errors": errors},
        ) from e


class BulkItemResult(BaseModel):
    """Outcome for one id in a batch operation."""

    id: str
    success: bool
    reason: str | None = None


class BulkOperationResult(BaseModel):
    total_processed: int
    successful: int
    failed: int
    results: list[BulkItemResult]

    @classmethod
    def from_results(cls, results: list[BulkItemResult]) -> "BulkOperationResult":
        successful = sum(1 for r in results if r.success)
        return cls(
            total_processed=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results,
        )
