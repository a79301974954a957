from pydantic import Field

from deal_desk.entrypoints.http.dtos.common import CamelModel, MoneyInput, money_field


class PartExchangeDTO(CamelModel):
    vrm: str = Field(min_length=1, max_length=16, examples=["AB12 CDE"])
    allowance: MoneyInput = money_field("Trade-in allowance", "2000.00")
    settlement: MoneyInput = "0.00"
    make: str | None = None
    model: str | None = None
    year: int | None = Field(default=None, ge=1900, le=2100)
    mileage: int | None = Field(default=None, ge=0)
    colour: str | None = None
    vat_qualifying: bool = False
    has_finance: bool = False
    finance_company_id: str | None = None
    has_settlement_in_writing: bool = False


class UpdatePartExchangeRequestDTO(CamelModel):
    """Partial update of the part exchange at ``index``."""

    index: int = Field(ge=0)
    vrm: str | None = Field(default=None, min_length=1, max_length=16)
    allowance: MoneyInput | None = None
    settlement: MoneyInput | None = None
    make: str | None = None
    model: str | None = None
    year: int | None = Field(default=None, ge=1900, le=2100)
    mileage: int | None = Field(default=None, ge=0)
    colour: str | None = None
    vat_qualifying: bool | None = None
    has_finance: bool | None = None
    finance_company_id: str | None = None
    has_settlement_in_writing: bool | None = None


class RemovePartExchangeRequestDTO(CamelModel):
    index: int = Field(ge=0)
