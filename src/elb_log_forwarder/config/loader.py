"""
Config file loader.

Supports plain YAML files and SOPS-encrypted YAML files (*.enc.yaml).
"""

import subprocess
from pathlib import Path
from typing import Any

import yaml


def is_sops_encrypted(file_path: Path) -> bool:
    """Return True if the file name marks it as SOPS-encrypted."""
    return file_path.name.endswith((".enc.yaml", ".enc.yml"))


def decrypt_sops_file(file_path: Path) -> dict[str, Any]:
    """
    Decrypt a SOPS-encrypted file and return parsed YAML.

    Args:
        file_path: Path to the encrypted file

    Returns:
        Decrypted configuration as dictionary

    Raises:
        FileNotFoundError: If file doesn't exist
        RuntimeError: If SOPS decryption fails
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Encrypted config file not found: {file_path}")

    try:
        result = subprocess.run(
            ["sops", "-d", str(file_path)],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"SOPS decryption failed: {e.stderr}") from e
    except FileNotFoundError as e:
        raise RuntimeError(
            "SOPS not installed. Install with: brew install sops (macOS) "
            "or download from https://github.com/getsops/sops/releases"
        ) from e

    return _parse_yaml(result.stdout, file_path)


def load_config_file(file_path: Path) -> dict[str, Any]:
    """
    Load a forwarder config file.

    Args:
        file_path: Path to a YAML or SOPS-encrypted YAML file

    Returns:
        Configuration dictionary (empty for an empty file)

    Raises:
        FileNotFoundError: If file doesn't exist
        RuntimeError: If the file cannot be decrypted or parsed
    """
    if is_sops_encrypted(file_path):
        return decrypt_sops_file(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    return _parse_yaml(file_path.read_text(encoding="utf-8"), file_path)


def _parse_yaml(text: str, file_path: Path) -> dict[str, Any]:
    try:
        config = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuntimeError(f"Invalid YAML in {file_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise RuntimeError(f"Config file {file_path} must contain a mapping")
    return config
