"""
Tests for the domain models: connection settings, VM records and template
parameters.
"""

import pytest
from pydantic import ValidationError

from hypervvm.domain.models import AuthMethod, ConnectionConfig, CreateVMParams, VirtualMachine, VMRefParams

from helpers import VM_ID


class TestConnectionConfig:
    """Test cases for ConnectionConfig."""

    def test_defaults(self):
        """Test default values for a password connection."""
        config = ConnectionConfig(host="hv01", username="admin", password="pw")

        assert config.https is False
        assert config.insecure is False
        assert config.auth_method is AuthMethod.NTLM
        assert config.timeout == 300
        assert config.effective_port == 5985
        assert config.endpoint == "http://hv01:5985/wsman"

    def test_https_default_port(self):
        """HTTPS switches the default port to 5986."""
        config = ConnectionConfig(host="hv01", username="admin", password="pw", https=True)
        assert config.endpoint == "https://hv01:5986/wsman"

    def test_explicit_port(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw", port=15985)
        assert config.endpoint == "http://hv01:15985/wsman"

    @pytest.mark.parametrize("field", ["host", "username"])
    def test_blank_required_fields_rejected(self, field):
        """Blank host or username is a configuration error."""
        values = {"host": "hv01", "username": "admin", "password": "pw", field: "   "}
        with pytest.raises(ValidationError, match="must not be empty"):
            ConnectionConfig(**values)

    def test_password_required(self):
        with pytest.raises(ValidationError, match="Password cannot be empty"):
            ConnectionConfig(host="hv01", username="admin")

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_invalid_port(self, port):
        with pytest.raises(ValidationError, match="Port must be between"):
            ConnectionConfig(host="hv01", username="admin", password="pw", port=port)

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError, match="Timeout must be a positive"):
            ConnectionConfig(host="hv01", username="admin", password="pw", timeout=0)

    def test_certificate_auth_needs_cert_key_and_https(self):
        """Certificate auth replaces the password with a client certificate."""
        with pytest.raises(ValidationError, match="requires both cert and ca_key"):
            ConnectionConfig(host="hv01", username="admin", auth_method="certificate", https=True)

        with pytest.raises(ValidationError, match="requires https"):
            ConnectionConfig(
                host="hv01", username="admin", auth_method="certificate", cert="c.pem", ca_key="k.pem"
            )

        config = ConnectionConfig(
            host="hv01", username="admin", auth_method="certificate", https=True, cert="c.pem", ca_key="k.pem"
        )
        assert config.get_password() == ""

    def test_blank_trust_material_is_unset(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw", ca_cert="", tls_server_name=" ")
        assert config.ca_cert is None
        assert config.tls_server_name is None

    def test_password_not_in_repr(self):
        config = ConnectionConfig(host="hv01", username="admin", password="s3cret")
        assert "s3cret" not in repr(config)
        assert config.get_password() == "s3cret"

    def test_from_env(self):
        """Settings are read from HYPERV_* variables."""
        environ = {
            "HYPERV_HOST": "hv02",
            "HYPERV_USERNAME": "ops",
            "HYPERV_PASSWORD": "pw",
            "HYPERV_HTTPS": "true",
            "HYPERV_INSECURE": "1",
            "HYPERV_TIMEOUT": "45",
            "HYPERV_AUTH": "basic",
            "UNRELATED": "x",
        }
        config = ConnectionConfig.from_env(environ)

        assert config.host == "hv02"
        assert config.username == "ops"
        assert config.https is True
        assert config.insecure is True
        assert config.timeout == 45
        assert config.auth_method is AuthMethod.BASIC

    def test_env_values_skips_empty(self):
        assert ConnectionConfig.env_values({"HYPERV_HOST": "", "HYPERV_PORT": "5986"}) == {"port": "5986"}

    def test_frozen(self):
        config = ConnectionConfig(host="hv01", username="admin", password="pw")
        with pytest.raises(ValidationError):
            config.host = "other"


class TestVirtualMachine:
    """Test cases for the VirtualMachine model."""

    def test_host_record_aliases(self):
        vm = VirtualMachine.model_validate(
            {"VMId": VM_ID, "VMName": "web01", "Generation": 2, "MemoryStartup": 1024, "Prerelease": True}
        )

        assert vm.vm_id == VM_ID
        assert vm.name == "web01"
        assert vm.generation == 2
        assert vm.memory_startup_bytes == 1024
        assert vm.prerelease is True
        assert vm.has_identifier

    def test_field_names_accepted(self):
        vm = VirtualMachine(name="web01", generation=1, memory_startup_bytes=512)
        assert vm.vm_id == ""
        assert not vm.has_identifier

    def test_nulls_become_zero_values(self):
        """Hosts emit null for unset properties."""
        vm = VirtualMachine.model_validate({"VMId": VM_ID, "Path": None, "SwitchName": None, "Prerelease": None})

        assert vm.path == ""
        assert vm.switch_name == ""
        assert vm.prerelease is False

    def test_unknown_keys_ignored(self):
        vm = VirtualMachine.model_validate({"VMId": VM_ID, "State": "Running"})
        assert not hasattr(vm, "State")

    def test_to_record_uses_host_names(self):
        record = VirtualMachine(vm_id=VM_ID, name="web01").to_record()
        assert record["VMId"] == VM_ID
        assert record["VMName"] == "web01"
        assert set(record) == {
            "VMId", "VMName", "Generation", "MemoryStartup", "Path", "SwitchName", "BootDevice", "Prerelease"
        }


class TestCreateVMParams:
    """Test cases for create template parameters."""

    def test_valid(self):
        params = CreateVMParams(name=" web01 ", generation=2, memory_startup_bytes=1024, boot_device="vhd")

        assert params.name == "web01"
        assert params.boot_device == "VHD"
        assert params.path is None

    @pytest.mark.parametrize("generation", [0, 3])
    def test_invalid_generation(self, generation):
        with pytest.raises(ValidationError, match="Generation must be 1 or 2"):
            CreateVMParams(name="web01", generation=generation, memory_startup_bytes=1024)

    def test_memory_must_be_positive(self):
        with pytest.raises(ValidationError):
            CreateVMParams(name="web01", generation=2, memory_startup_bytes=0)

    def test_unknown_boot_device(self):
        with pytest.raises(ValidationError, match="Boot device must be one of"):
            CreateVMParams(name="web01", generation=2, memory_startup_bytes=1024, boot_device="USB")

    def test_blank_optionals_mean_default(self):
        params = CreateVMParams(name="web01", generation=1, memory_startup_bytes=1024, path="", switch_name="  ")
        assert params.path is None
        assert params.switch_name is None


class TestVMRefParams:
    """Test cases for identifier parameters."""

    def test_normalizes_guid(self):
        assert VMRefParams(vm_id=VM_ID.upper()).vm_id == VM_ID

    def test_rejects_non_guid(self):
        with pytest.raises(ValidationError, match="is not a VM identifier"):
            VMRefParams(vm_id="web01'; Remove-VM *")
