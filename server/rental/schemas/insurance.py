"""Insurance catalog schemas."""

from pydantic import BaseModel, Field, model_validator

NO_INSURANCE_ID = "none"


class CreateInsurancePackageRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    min_coverage: int = Field(..., ge=0)
    max_coverage: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_coverage_range(self):
        if self.max_coverage < self.min_coverage:
            raise ValueError("max_coverage must not be below min_coverage")
        return self


class InsurancePackage(BaseModel):
    """Insurance package response schema."""

    id: str
    name: str
    description: str | None = None
    min_coverage: int
    max_coverage: int


class ListInsurancePackagesResponse(BaseModel):
    items: list[InsurancePackage]
