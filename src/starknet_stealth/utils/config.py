"""Scanner and network configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields

from starknet_stealth.utils.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_PAGES,
    DEFAULT_REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "STEALTH_"


@dataclass
class StealthConfig:
    """Addresses of the on-chain collaborators and scan limits."""

    registry_address: str = ""
    factory_address: str = ""
    account_class_hash: str = ""
    rpc_url: str = "http://localhost:5050/rpc"
    chain_id: str = "SN_SEPOLIA"
    max_pages: int = DEFAULT_MAX_PAGES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        for name in ("registry_address", "factory_address", "account_class_hash"):
            value = getattr(self, name)
            if not value:
                errors.append(f"{name} cannot be empty")
                continue
            try:
                int(value, 16)
            except ValueError:
                errors.append(f"{name} is not a hex value: {value!r}")

        if not self.rpc_url.startswith(("http://", "https://")):
            errors.append(f"Invalid rpc_url: {self.rpc_url}")
        if self.max_pages < 1:
            errors.append("max_pages must be at least 1")
        if self.chunk_size < 1:
            errors.append("chunk_size must be at least 1")
        if self.request_timeout <= 0:
            errors.append("request_timeout must be positive")
        return errors

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> StealthConfig:
        """Build from STEALTH_* variables, e.g. STEALTH_RPC_URL."""
        environ = dict(os.environ) if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.type in ("int", int):
                values[f.name] = int(raw)
            elif f.type in ("float", float):
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        return cls(**values)

    def save(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info("Configuration saved to %s", path)

    @classmethod
    def load(cls, path: str) -> StealthConfig:
        with open(path) as f:
            data = json.load(f)
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
        config = cls(**{k: v for k, v in data.items() if k in known})
        logger.info("Configuration loaded from %s", path)
        return config
