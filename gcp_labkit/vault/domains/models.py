"""Domain models for the Vault lab."""
from dataclasses import dataclass, field
from typing import Dict, Optional

from gcp_labkit.common.domains.settings import VaultLabSettings


@dataclass
class VaultLabContext:
    """State carried from one bootstrap step to the next."""
    settings: VaultLabSettings
    project_id: Optional[str] = None
    bucket: Optional[str] = None
    vault_binary: str = "vault"
    default_token: Optional[str] = None  # set only when this run started the server
    token: Optional[str] = None

    @property
    def addr(self) -> str:
        return self.settings.addr


@dataclass
class VaultLabReport:
    """What a bootstrap run did."""
    secret_value: Optional[str] = None
    artifact_path: Optional[str] = None
    uploaded_uri: Optional[str] = None
    server_started: bool = False
    ensured: Dict[str, str] = field(default_factory=dict)  # "kind:name" -> EnsureResult value
    token_accessor: Optional[str] = None
    ciphertext: Optional[str] = None
