from datetime import date, datetime
from typing import Optional

from pydantic import Field, computed_field, field_validator, model_validator

from app.models.medicine import is_expired
from app.schemas.common import CamelModel, Money


def _strip_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class MedicineCreate(CamelModel):
    dci: str
    nom_commercial: str
    stock: int = Field(ge=0)
    ddp: Optional[date] = None
    lot: Optional[str] = None
    cout: Money
    prix_de_vente: Money

    @field_validator("dci", "nom_commercial")
    @classmethod
    def names_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)


class MedicineUpdate(CamelModel):
    """
    Partial update. Only the keys present in the payload are applied.
    `ddp` and `lot` may be cleared with null; the other fields may not.
    """
    dci: Optional[str] = None
    nom_commercial: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    ddp: Optional[date] = None
    lot: Optional[str] = None
    cout: Optional[Money] = None
    prix_de_vente: Optional[Money] = None

    @field_validator("dci", "nom_commercial")
    @classmethod
    def names_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _strip_name(v)

    @model_validator(mode="after")
    def _reject_null_required(self):
        for name in ("dci", "nom_commercial", "stock", "cout", "prix_de_vente"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields explicitly sent by the client, keyed by column name."""
        return self.model_dump(exclude_unset=True)


class MedicineResponse(CamelModel):
    id: str
    dci: str
    nom_commercial: str
    stock: int
    ddp: Optional[date] = None
    lot: Optional[str] = None
    cout: Money
    prix_de_vente: Money
    deleted: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def expired(self) -> bool:
        return is_expired(self.ddp)
