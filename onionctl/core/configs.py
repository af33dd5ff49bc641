"""Configuration management for onionctl.

Loads control port settings from ~/.config/onionctl/config.cfg, falls back
to a .env file for missing keys and lets ONIONCTL_* environment variables
override both.
"""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

CONFIG_PATH = Path.home() / ".config" / "onionctl" / "config.cfg"
ENV_PATH = Path(".env")

ENV_OVERRIDES = {
    "control_address": "ONIONCTL_CONTROL_ADDRESS",
    "control_port": "ONIONCTL_CONTROL_PORT",
    "control_password": "ONIONCTL_PASSWORD",
}


@dataclass
class ControlConfig:
    address: str = "127.0.0.1"
    port: int = 9051
    password: str = ""
    encoding: str = "ascii"


def load_raw_config(path: Path = CONFIG_PATH, env_path: Optional[Path] = ENV_PATH) -> Dict[str, str]:
    """
    Load configuration values from the config file and optional .env file.
    Values are returned with lowercase keys for convenience; the config file
    wins over the .env file.
    """
    data: Dict[str, str] = {}

    if env_path is not None and env_path.exists():
        data.update(
            {k.lower(): v for k, v in dotenv_values(env_path).items() if v is not None}
        )

    cfg = configparser.ConfigParser()
    if path.exists():
        cfg.read(path)
        if "DEFAULT" in cfg:
            data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})
        if "AUTH" in cfg:
            data.update({k.lower(): v for k, v in cfg["AUTH"].items()})

    return data


def save_raw_config(values: Dict[str, str], path: Path = CONFIG_PATH) -> Path:
    """Write values back to the config file, keeping the password under [AUTH]."""
    cfg = configparser.ConfigParser()
    cfg["DEFAULT"] = {
        "control_address": values.get("control_address", ""),
        "control_port": values.get("control_port", ""),
        "encoding": values.get("encoding", "ascii"),
    }
    cfg["AUTH"] = {"control_password": values.get("control_password", "")}

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as handle:
        cfg.write(handle)
    # Owner only: the file holds a credential
    os.chmod(path, 0o600)
    return path


def get_control_config(raw: Optional[Dict[str, str]] = None) -> ControlConfig:
    """
    Build a ControlConfig from raw configuration values.
    Raises ValueError if the port is not a valid TCP port.
    """
    raw = dict(load_raw_config() if raw is None else raw)

    for key, env_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None and value.strip() != "":
            raw[key] = value

    defaults = ControlConfig()
    address = raw.get("control_address", "").strip() or defaults.address

    port_text = str(raw.get("control_port", "") or defaults.port).strip()
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid control port '{port_text}' in configuration.") from None
    if not 0 < port < 65536:
        raise ValueError(f"Control port out of range: {port}")

    return ControlConfig(
        address=address,
        port=port,
        password=raw.get("control_password", ""),
        encoding=raw.get("encoding", "").strip() or defaults.encoding,
    )
