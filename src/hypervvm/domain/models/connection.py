"""
Connection configuration domain model.

Describes how to reach the hypervisor host over WinRM. The model is frozen:
one instance is built per provider configuration and never mutated.
"""

import os
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

DEFAULT_HTTP_PORT = 5985
DEFAULT_HTTPS_PORT = 5986
DEFAULT_TIMEOUT_SECONDS = 300

# Model field -> environment variable
ENV_VARS: Dict[str, str] = {
    "host": "HYPERV_HOST",
    "port": "HYPERV_PORT",
    "username": "HYPERV_USERNAME",
    "password": "HYPERV_PASSWORD",
    "https": "HYPERV_HTTPS",
    "insecure": "HYPERV_INSECURE",
    "tls_server_name": "HYPERV_TLS_SERVER_NAME",
    "ca_cert": "HYPERV_CACERT",
    "ca_key": "HYPERV_CAKEY",
    "cert": "HYPERV_CERT",
    "timeout": "HYPERV_TIMEOUT",
    "auth_method": "HYPERV_AUTH",
}


class AuthMethod(Enum):
    """WinRM authentication transports understood by pywinrm."""

    BASIC = "basic"
    NTLM = "ntlm"
    KERBEROS = "kerberos"
    CREDSSP = "credssp"
    CERTIFICATE = "certificate"


class ConnectionConfig(BaseModel):
    """
    Domain model for the hypervisor host connection.

    Trust material fields hold file paths: ``ca_cert`` is the CA bundle used
    to verify the host, ``cert`` and ``ca_key`` are the client certificate
    and its key for certificate authentication.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = Field(..., description="Hostname or IP address of the Hyper-V host")
    port: Optional[int] = Field(None, description="WinRM listener port (5985/5986 when unset)")
    username: str = Field(..., description="Account used to authenticate")
    password: SecretStr = Field(SecretStr(""), description="Password for the account")
    https: bool = Field(False, description="Connect over HTTPS")
    insecure: bool = Field(False, description="Skip TLS certificate verification")
    tls_server_name: Optional[str] = Field(None, description="Name expected on the host certificate")
    ca_cert: Optional[str] = Field(None, description="Path to the CA certificate bundle")
    ca_key: Optional[str] = Field(None, description="Path to the client certificate key")
    cert: Optional[str] = Field(None, description="Path to the client certificate")
    timeout: int = Field(DEFAULT_TIMEOUT_SECONDS, description="Execution budget per operation, in seconds")
    auth_method: AuthMethod = Field(AuthMethod.NTLM, description="WinRM authentication transport")

    @field_validator("host", "username")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Reject blank host and username values."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Optional[int]) -> Optional[int]:
        """Validate port number."""
        if v is not None and (v < 1 or v > 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Timeout must leave room for at least one round trip."""
        if v <= 0:
            raise ValueError("Timeout must be a positive number of seconds")
        return v

    @field_validator("tls_server_name", "ca_cert", "ca_key", "cert", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat empty strings from env/CLI as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "ConnectionConfig":
        """Password auth needs a password; certificate auth needs cert and key."""
        if self.auth_method is AuthMethod.CERTIFICATE:
            if not self.cert or not self.ca_key:
                raise ValueError("Certificate authentication requires both cert and ca_key")
            if not self.https:
                raise ValueError("Certificate authentication requires https")
        elif not self.password.get_secret_value():
            raise ValueError("Password cannot be empty")
        return self

    @property
    def effective_port(self) -> int:
        """Configured port, or the WinRM default for the scheme."""
        if self.port is not None:
            return self.port
        return DEFAULT_HTTPS_PORT if self.https else DEFAULT_HTTP_PORT

    @property
    def endpoint(self) -> str:
        """WS-Management endpoint URL."""
        scheme = "https" if self.https else "http"
        return f"{scheme}://{self.host}:{self.effective_port}/wsman"

    def get_password(self) -> str:
        """Get the plain text password."""
        return self.password.get_secret_value()  # pylint: disable=no-member

    @staticmethod
    def env_values(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Collect connection settings from HYPERV_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Field name -> raw string value for every variable that is set
        """
        environ = os.environ if environ is None else environ
        return {field: environ[var] for field, var in ENV_VARS.items() if environ.get(var)}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConnectionConfig":
        """Build a config purely from the environment."""
        return cls(**cls.env_values(environ))
