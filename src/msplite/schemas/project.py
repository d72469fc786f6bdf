"""Pydantic schemas for creating a project from a template."""

from __future__ import annotations
from datetime import date, timedelta

from pydantic import BaseModel, Field, field_validator, model_validator

from msplite.schedule.view import parse_iso_date

BUFFER_DAYS_FIXED = 30

# key → (label, required)
MILESTONE_FIELDS = {
    "LOI": ("LOI (Project Start)", True),
    "DES_HANDOVER": ("Design Handover Date", False),
    "LAND_BOUNDARY": ("Final Land Boundary", False),
    "INV_FINAL": ("Inverter Finalisation", False),
    "MOD_FINAL": ("Module Finalisation", False),
    "GSS_END_SLD": ("GSS End SLD", False),
    "LOCAL_APPROVAL_DWG": ("Local State Approved Equipment Structure Drawing", False),
    "GSS_INPUTS_CHECKLIST": ("Filled Checklist of GSS Inputs", False),
    "COMM_CONTRACT": ("Commissioning (as per Contract)", True),
}


class ProjectCreate(BaseModel):
    """New project request. LOI is the project start; the backend scales durations."""
    project_name: str = Field(alias="projectName")
    template_name: str = Field(default="Solar EPC Master v1", alias="templateName")
    milestones: dict[str, str] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("project_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name is required")
        return v

    @field_validator("template_name")
    @classmethod
    def _default_template(cls, v: str) -> str:
        return v.strip() or "Solar EPC Master v1"

    @field_validator("milestones")
    @classmethod
    def _known_milestones(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = set(v) - set(MILESTONE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown milestone(s): {', '.join(sorted(unknown))}")
        for key, value in v.items():
            if value and parse_iso_date(value) is None:
                raise ValueError(f"Milestone {key} is not a YYYY-MM-DD date: {value!r}")
        return v

    @model_validator(mode="after")
    def _required_milestones(self) -> ProjectCreate:
        for key, (label, required) in MILESTONE_FIELDS.items():
            if required and not parse_iso_date(self.milestones.get(key)):
                raise ValueError(f"{label} is required")
        return self

    @property
    def loi_date(self) -> date:
        return parse_iso_date(self.milestones["LOI"])

    @property
    def commissioning_contract_date(self) -> date:
        return parse_iso_date(self.milestones["COMM_CONTRACT"])

    def commissioning_internal_date(self, buffer_days: int = BUFFER_DAYS_FIXED) -> date:
        return self.commissioning_contract_date - timedelta(days=buffer_days)

    def to_payload(self, buffer_days: int = BUFFER_DAYS_FIXED) -> dict:
        """Body for ``POST /createProject``."""
        internal = self.commissioning_internal_date(buffer_days).isoformat()
        return {
            "projectName": self.project_name,
            "templateName": self.template_name,
            "bufferDays": buffer_days,
            "loiDate": self.loi_date.isoformat(),
            "commissioningContractDate": self.commissioning_contract_date.isoformat(),
            "commissioningInternalDate": internal,
            "milestones": {**self.milestones, "COMM_INTERNAL": internal},
        }
