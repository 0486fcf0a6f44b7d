from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

# ---------- user ----------
class UserIn(_CamelModel):
    email: str = Field(min_length=3, max_length=255)
    first_name: Optional[str] = Field(None, alias="firstName", max_length=120)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=120)

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str):
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain:
            raise ValueError("invalid_email")
        return v.lower()

# ---------- mentee ----------
class MenteeIn(_CamelModel):
    education_qualification_id: Optional[int] = Field(None, alias="educationQualificationId", ge=1)
    current_job_role_id: Optional[int] = Field(None, alias="currentJobRoleId", ge=1)
    expected_job_role_id: Optional[int] = Field(None, alias="expectedJobRoleId", ge=1)
    experience_years: Optional[int] = Field(None, alias="experienceYears", ge=0, le=80)

# ---------- cv ----------
class CvIn(_CamelModel):
    file_name: str = Field(alias="fileName", min_length=1, max_length=255)
    content: Optional[str] = None  # base64
    file_url: Optional[str] = Field(None, alias="fileUrl", max_length=1024)
    content_type: Optional[str] = Field(None, alias="contentType", max_length=120)

    @model_validator(mode="after")
    def _one_source(self):
        if bool(self.content) == bool(self.file_url):
            raise ValueError("exactly one of content or fileUrl is required")
        return self

# ---------- booking ----------
class BookingIn(_CamelModel):
    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    timezone: Optional[str] = None
    session_expectations: Optional[str] = Field(None, alias="sessionExpectations", max_length=5000)
    cv: Optional[CvIn] = None

class BookingRequest(_CamelModel):
    user: UserIn
    mentee: MenteeIn
    booking: BookingIn
