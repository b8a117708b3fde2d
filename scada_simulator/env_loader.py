"""
Load environment variables from Azure Key Vault, with optional per-user overrides.
Falls back to .env when Key Vault is not configured.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Known env vars to fetch from Key Vault (in lookup order for per-user)
ENV_VARS = (
    "SIMULATOR_CONNECTION_STRING",
    "SIMULATOR_SETTINGS",
)


def _env_to_secret_name(env_key: str) -> str:
    """Convert env var name to Key Vault secret name (underscores -> hyphens)."""
    return env_key.replace("_", "-")


def _find_env_file(base_dir: Optional[Path] = None) -> Optional[Path]:
    for base in (base_dir or Path.cwd(), Path(__file__).resolve().parent.parent):
        env_path = base / ".env"
        if env_path.exists():
            return env_path
    return None


def _load_from_dotenv(base_dir: Optional[Path] = None) -> None:
    """Load vars from .env without overriding values already set."""
    env_path = _find_env_file(base_dir)
    if env_path is not None:
        load_dotenv(env_path, override=False)


def _secret_client(vault_name: str):
    try:
        from azure.identity import DefaultAzureCredential
        from azure.keyvault.secrets import SecretClient
    except ImportError as e:
        raise ConfigurationError(
            "KEYVAULT_NAME is set but azure-identity / azure-keyvault-secrets are not installed "
            "(pip install 'scada-simulator[keyvault]')."
        ) from e
    url = f"https://{vault_name}.vault.azure.net/"
    return SecretClient(vault_url=url, credential=DefaultAzureCredential())


def load_env(base_dir: Optional[Path] = None) -> None:
    """
    Load env vars from Azure Key Vault (or .env fallback).
    - KEYVAULT_NAME: vault name (required for Key Vault)
    - AZURE_USER_NAME: optional; use {VAR}-{USER} secrets first, then {VAR}
    - Does not overwrite existing os.environ values (allows CLI overrides)
    """
    # KEYVAULT_NAME itself may live in .env
    _load_from_dotenv(base_dir)

    vault_name = os.environ.get("KEYVAULT_NAME", "").strip()
    user_name = os.environ.get("AZURE_USER_NAME", "").strip().upper()
    if not vault_name:
        return

    client = _secret_client(vault_name)
    for var in ENV_VARS:
        if var in os.environ:
            continue  # Do not overwrite (CLI override)
        secret_names = []
        base_name = _env_to_secret_name(var)
        if user_name:
            secret_names.append(f"{base_name}-{user_name}")
        secret_names.append(base_name)
        for name in secret_names:
            try:
                secret = client.get_secret(name)
            except Exception as e:
                logger.debug(f"Secret {name} not available in {vault_name}: {e}")
                continue
            if secret and secret.value:
                os.environ[var] = secret.value
                break
