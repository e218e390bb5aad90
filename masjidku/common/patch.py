"""
Partial update helpers.

Two conventions exist side by side:

* Tri-state (``PatchModel``): a field missing from the body is left alone,
  while an explicit ``null`` clears the column.
* Plain optional (``apply_plain_updates``): ``None`` means "not sent" and an
  empty string on a clearable text field means "clear".
"""

from typing import Any, ClassVar, Dict, Iterable, Tuple

from pydantic import BaseModel, model_validator


class PatchModel(BaseModel):
    class Config:
        use_enum_values = True

    # Columns that are NOT NULL in the database; explicit null is rejected for them.
    non_nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_null_on_required_columns(self) -> "PatchModel":
        for name in self.non_nullable_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set

    def changes(self) -> Dict[str, Any]:
        """Only the fields that were present in the request body (null included)."""
        return {name: getattr(self, name) for name in self.model_fields_set}


def apply_patch(obj: Any, patch: PatchModel) -> Dict[str, Any]:
    changes = patch.changes()
    for name, value in changes.items():
        setattr(obj, name, value)
    return changes


def apply_plain_updates(obj: Any, payload: BaseModel, clearable: Iterable[str] = ()) -> Dict[str, Any]:
    """Apply every non-None field; an empty string on a ``clearable`` field stores NULL."""
    clearable = set(clearable)
    applied: Dict[str, Any] = {}
    for name, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                if name not in clearable:
                    continue
                value = None
        setattr(obj, name, value)
        applied[name] = value
    return applied
