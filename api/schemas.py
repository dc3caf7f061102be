from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DateRangeModel(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class FilterStateModel(BaseModel):
    # Browser clients send camelCase; Python callers may use the field names.
    model_config = ConfigDict(populate_by_name=True)

    date_range: DateRangeModel = Field(default_factory=DateRangeModel, alias="dateRange")
    offices: List[str] = Field(default_factory=list)
    insurance_carriers: List[str] = Field(default_factory=list, alias="insuranceCarriers")
    claim_status: List[str] = Field(default_factory=list, alias="claimStatus")
    statuses: List[str] = Field(default_factory=list)
    interaction_types: List[str] = Field(default_factory=list, alias="interactionTypes")
    search_query: str = Field(default="", alias="searchQuery")
    how_proceeded: List[str] = Field(default_factory=list, alias="howProceeded")
    escalated_to: List[str] = Field(default_factory=list, alias="escalatedTo")
    missing_docs: List[str] = Field(default_factory=list, alias="missingDocs")


class GroupRequestModel(BaseModel):
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    x_field: str
    y_fields: List[str] = Field(default_factory=lambda: ["paid_amount"])
    aggregation: str = "sum"
    limit: Optional[int] = Field(default=None, ge=1)


class ConnectionResponse(BaseModel):
    connected: bool
