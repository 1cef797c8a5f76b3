"""
Template parameter models.

Each script template binds exactly one of these models. Validation here is
what turns a bad request into a binding failure before any script text is
produced.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Values accepted by New-VM -BootDevice
BOOT_DEVICES = ("CD", "Floppy", "IDE", "LegacyNetworkAdapter", "NetworkAdapter", "VHD")


class VMRefParams(BaseModel):
    """Parameters for templates that address an existing VM by identifier."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vm_id: str = Field(..., alias="VMId", description="Host-assigned VM identifier")

    @field_validator("vm_id")
    @classmethod
    def validate_vm_id(cls, v: str) -> str:
        """Identifiers are GUIDs; anything else never came from the host."""
        try:
            return str(uuid.UUID(v.strip()))
        except ValueError as e:
            raise ValueError(f"'{v}' is not a VM identifier") from e


class CreateVMParams(BaseModel):
    """Parameters for the create template."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., alias="VMName")
    generation: int = Field(..., alias="Generation")
    memory_startup_bytes: int = Field(..., alias="MemoryStartup", gt=0)
    path: Optional[str] = Field(None, alias="Path")
    switch_name: Optional[str] = Field(None, alias="SwitchName")
    boot_device: Optional[str] = Field(None, alias="BootDevice")
    prerelease: bool = Field(False, alias="Prerelease")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate VM name is not empty."""
        if not v or not v.strip():
            raise ValueError("VM name cannot be empty")
        return v.strip()

    @field_validator("generation")
    @classmethod
    def validate_generation(cls, v: int) -> int:
        """Hyper-V knows generation 1 and 2 only."""
        if v not in (1, 2):
            raise ValueError("Generation must be 1 or 2")
        return v

    @field_validator("path", "switch_name", "boot_device")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Empty optional strings mean 'use the host default'."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("boot_device")
    @classmethod
    def validate_boot_device(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the boot device to New-VM's spelling."""
        if v is None:
            return v
        for device in BOOT_DEVICES:
            if v.lower() == device.lower():
                return device
        raise ValueError(f"Boot device must be one of: {', '.join(BOOT_DEVICES)}")
