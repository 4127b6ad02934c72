"""
Data models for enterprise patient and device lookups.

Field aliases follow the mobile client's record format (``PatientId``,
``DateofBirth``...), which predates this service.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DataModel(str, Enum):
    PATIENTS = "patients"
    DEVICES = "devices"
    BOTH = "both"


class Patient(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: str = Field(alias="PatientId")
    registration_number: str = Field(alias="RegistrationNumber")
    masked_nric: str = Field(alias="MaskedNric")
    masked_name: str = Field(alias="MaskedName")
    date_of_birth: str = Field(alias="DateofBirth")
    gender_value: str = Field(alias="GenderValue")
    business_unit_code: str = Field(alias="BusinessUnitCode")
    enterprise_code: str = Field(alias="EnterpriseCode")


class DeviceMaster(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="DeviceId")
    device_name: str = Field(alias="DeviceName")
    device_model: str = Field(alias="DeviceModel")
    brand: str = Field(alias="Brand")
    serial_number: str = Field(alias="SerialNumber")
    location: str = Field(default="", alias="Location")
    business_unit_code: str = Field(default="", alias="BusinessUnitCode")
    notes: str = Field(default="", alias="Notes")
    status: str = Field(default="Active", alias="Status")


class EnterpriseData(BaseModel):
    patients: Optional[list[Patient]] = None
    devices: Optional[list[DeviceMaster]] = None
    enterprise: Optional[dict[str, Any]] = None
