"""
Virtual machine domain model.

Field aliases are the keys the host-side scripts emit, so the same model
decodes host records and carries caller requests.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class VirtualMachine(BaseModel):
    """
    Domain model for a Hyper-V virtual machine.

    ``vm_id`` is assigned by the host; callers leave it empty for Create and
    only ever copy it from a Create or Read result.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vm_id: str = Field("", alias="VMId", description="Host-assigned identifier (GUID)")
    name: str = Field("", alias="VMName", description="Display name")
    generation: int = Field(0, alias="Generation", ge=0, description="Hardware generation (1 or 2)")
    memory_startup_bytes: int = Field(0, alias="MemoryStartup", ge=0, description="Startup memory in bytes")
    path: str = Field("", alias="Path", description="Storage path for VM files")
    switch_name: str = Field("", alias="SwitchName", description="Virtual switch binding")
    boot_device: str = Field("", alias="BootDevice", description="Boot device selector")
    prerelease: bool = Field(False, alias="Prerelease", description="Prerelease configuration version")

    @field_validator("*", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any, info: ValidationInfo) -> Any:
        """Hosts emit null for unset properties; map them to the zero value."""
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("vm_id", "name", "path", "switch_name", "boot_device")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Trim stray whitespace from text fields."""
        return v.strip()

    @property
    def has_identifier(self) -> bool:
        """Whether the host has assigned an identifier."""
        return bool(self.vm_id)

    def to_record(self) -> dict[str, Any]:
        """Serialize using the host's field names."""
        return self.model_dump(by_alias=True)
