from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FilterSetModel(BaseModel):
    # Browser clients send camelCase (businessType, dateFrom); both spellings are accepted.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    business: Optional[str] = None
    business_type: Optional[str] = None
    process: Optional[str] = None
    sub_type: Optional[str] = None
    status: Optional[str] = None
    user: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None


class PivotDetailRequest(BaseModel):
    filters: FilterSetModel = Field(default_factory=FilterSetModel)
    row_dim: str = "business"
    col_dim: str = "owner"
    row_value: Optional[str] = None
    col_value: Optional[str] = None


class RollupRequest(BaseModel):
    filters: FilterSetModel = Field(default_factory=FilterSetModel)
    expanded: List[List[str]] = Field(default_factory=list)
    expand_all: bool = False


class RollupDetailRequest(BaseModel):
    filters: FilterSetModel = Field(default_factory=FilterSetModel)
    path: List[str] = Field(default_factory=list)


class AdminQueryModel(BaseModel):
    owner: Optional[str] = None
    business_type: Optional[str] = None
    status: Optional[str] = None
    business_query: str = ""
    deadline_from: Optional[str] = None
    deadline_to: Optional[str] = None
    sort_key: Optional[str] = None
    sort_dir: Literal["asc", "desc"] = "asc"
