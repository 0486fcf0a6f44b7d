from __future__ import annotations
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

class MatchMenteeIn(_CamelModel):
    industry_id: int = Field(alias="industryId", ge=1)
    job_role_id: int = Field(alias="jobRoleId", ge=1)
    education_level_id: int = Field(alias="educationLevelId", ge=1)
    # "Senior Product Manager", "5+ years" или просто число лет
    experience_level: Optional[Union[int, str]] = Field(None, alias="experienceLevel")

class MatchRequest(_CamelModel):
    mentee: MatchMenteeIn
