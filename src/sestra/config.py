import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Union

DEFAULT_SESTRA_BASE_URL = "https://api.sestralabs.xyz"
DEFAULT_SOLANA_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"

# camelCase spellings accepted in mappings and JSON files.
_KEY_ALIASES = {
    "sestraBaseUrl": "sestra_base_url",
    "serviceBaseUrl": "service_base_url",
    "baseUrl": "base_url",
    "solanaRpcEndpoint": "solana_rpc_endpoint",
    "apiKey": "api_key",
}


@dataclass(frozen=True)
class SestraConfig:
    sestra_base_url: Optional[str] = None
    service_base_url: Optional[str] = None
    # Deprecated spelling of sestra_base_url.
    base_url: Optional[str] = None
    solana_rpc_endpoint: str = DEFAULT_SOLANA_RPC_ENDPOINT
    sandbox: bool = False
    api_key: Optional[str] = None
    timeout: float = 30.0

    @property
    def gateway_url(self) -> str:
        url = self.sestra_base_url or self.base_url or DEFAULT_SESTRA_BASE_URL
        return url.rstrip("/")

    @property
    def service_url(self) -> str:
        if self.service_base_url:
            return self.service_base_url.rstrip("/")
        return self.gateway_url

    def merged(self, overrides: Mapping[str, Any]) -> "SestraConfig":
        return replace(self, **_normalize_keys(overrides))


def _normalize_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    known = {config_field.name for config_field in fields(SestraConfig)}
    normalized: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown configuration key: {key}")
        if value is None:
            continue
        normalized[name] = value

    if "sandbox" in normalized:
        normalized["sandbox"] = bool(normalized["sandbox"])
    if "timeout" in normalized:
        normalized["timeout"] = float(normalized["timeout"])
    return normalized


def resolve_config(
    config: Union[SestraConfig, Mapping[str, Any], None] = None,
    **overrides: Any,
) -> SestraConfig:
    """
    Merge ``config`` and keyword ``overrides`` over the defaults.

    ``config`` may be a :class:`SestraConfig` or a plain mapping using either
    snake_case or camelCase keys. ``None`` values never replace a default.
    """
    if isinstance(config, SestraConfig):
        resolved = config
    else:
        resolved = SestraConfig().merged(config or {})
    if overrides:
        resolved = resolved.merged(overrides)
    return resolved


def load_config(path: str) -> SestraConfig:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file does not exist: {path}")

    with open(path, "r", encoding="utf-8") as config_fh:
        raw = json.load(config_fh)
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file must contain a JSON object: {path}")
    return resolve_config(raw)
