"""Configuration parsing and normalization helpers for pajatso.

Brief:
  Utilities used by the CLI entrypoint to:
    - read and schema-validate the YAML config file
    - overlay command-line flags onto the file values
    - turn the merged mapping into a ZoneConfig and listener settings

Inputs:
  - YAML config paths and parsed config dicts

Outputs:
  - Normalized config dicts, ZoneConfig instances and listen tuples
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import yaml

from .config_schema import validate_config
from ..zone import ZoneConfig

DEFAULT_LISTEN = ":53"
DEFAULT_TCP_IDLE_TIMEOUT = 15.0


def parse_config_file(config_path: str, *, unknown_keys: str = "warn") -> Dict[str, Any]:
    """Brief: Read and schema-validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file.
      - unknown_keys: Policy passed through to validate_config.

    Outputs:
      - dict: Parsed configuration mapping (empty file yields {}).

    Raises:
      - ValueError: When the root is not a mapping or schema validation fails.
    """

    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    validate_config(cfg, config_path=config_path, unknown_keys=unknown_keys)
    return cfg


def parse_listen(value: str) -> Tuple[str, int]:
    """Brief: Split a HOST:PORT listen address.

    Inputs:
      - value: ``host:port``, ``:port`` (all IPv4 interfaces) or
        ``[v6addr]:port``.

    Outputs:
      - (host, port) tuple.

    Raises:
      - ValueError: when the port is missing, not numeric or out of range.

    Example:
      >>> parse_listen(":53")
      ('0.0.0.0', 53)
      >>> parse_listen("[::1]:5353")
      ('::1', 5353)
    """

    text = str(value or "").strip()
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"invalid listen address {value!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep:
            raise ValueError(f"invalid listen address {value!r}: missing port")
        if ":" in host:
            raise ValueError(
                f"invalid listen address {value!r}: bracket IPv6 hosts as [addr]:port"
            )
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid listen port in {value!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"listen port out of range in {value!r}")
    return host or "0.0.0.0", port


def apply_cli_overrides(
    cfg: Dict[str, Any],
    *,
    zone: Optional[str] = None,
    nameserver: Optional[str] = None,
    tsig_name: Optional[str] = None,
    tsig_secret: Optional[str] = None,
    listen: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Dict[str, Any]:
    """Brief: Overlay command-line values onto a parsed config mapping.

    Inputs:
      - cfg: Parsed configuration mapping (mutated in-place).
      - zone, nameserver, tsig_name, tsig_secret, listen, log_level: CLI values;
        None means "not given" and leaves the file value untouched.

    Outputs:
      - dict: The same mapping, for chaining.
    """

    def _section(key: str) -> Dict[str, Any]:
        sub = cfg.get(key)
        if not isinstance(sub, dict):
            sub = {}
            cfg[key] = sub
        return sub

    if zone is not None:
        _section("zone")["name"] = zone
    if nameserver is not None:
        _section("zone")["nameserver"] = nameserver
    if tsig_name is not None:
        _section("tsig")["name"] = tsig_name
    if tsig_secret is not None:
        _section("tsig")["secret"] = tsig_secret
    if listen is not None:
        host, port = parse_listen(listen)
        section = _section("listen")
        section["host"] = host
        section["port"] = port
    if log_level is not None:
        _section("logging")["level"] = log_level
    return cfg


def build_zone_config(cfg: Dict[str, Any]) -> ZoneConfig:
    """Brief: Build the immutable ZoneConfig from a merged config mapping.

    Inputs:
      - cfg: Mapping with ``zone`` and ``tsig`` sections.

    Outputs:
      - ZoneConfig with normalized names and a verified secret.

    Raises:
      - ValueError: when a required setting is missing or invalid. pydantic's
        ValidationError is a ValueError subclass and propagates as-is.
    """

    zone_cfg = cfg.get("zone") or {}
    tsig_cfg = cfg.get("tsig") or {}
    required = {
        "zone.name (--zone)": zone_cfg.get("name"),
        "zone.nameserver (--ns)": zone_cfg.get("nameserver"),
        "tsig.name (--tsig-name)": tsig_cfg.get("name"),
        "tsig.secret (--tsig-secret)": tsig_cfg.get("secret"),
    }
    missing = [label for label, val in required.items() if not val]
    if missing:
        raise ValueError("missing required settings: " + ", ".join(missing))

    return ZoneConfig(
        zone=zone_cfg["name"],
        nameserver=zone_cfg["nameserver"],
        key_name=tsig_cfg["name"],
        key_secret=tsig_cfg["secret"],
    )


def listen_settings(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Brief: Resolve listener settings with defaults applied.

    Inputs:
      - cfg: Mapping with an optional ``listen`` section.

    Outputs:
      - dict with keys host, port, udp, tcp, tcp_idle_timeout.

    Raises:
      - ValueError: when both udp and tcp are disabled.
    """

    listen_cfg = cfg.get("listen") or {}
    default_host, default_port = parse_listen(DEFAULT_LISTEN)
    settings = {
        "host": str(listen_cfg.get("host") or default_host),
        "port": int(listen_cfg.get("port", default_port)),
        "udp": bool(listen_cfg.get("udp", True)),
        "tcp": bool(listen_cfg.get("tcp", True)),
        "tcp_idle_timeout": float(
            listen_cfg.get("tcp_idle_timeout", DEFAULT_TCP_IDLE_TIMEOUT)
        ),
    }
    if not settings["udp"] and not settings["tcp"]:
        raise ValueError("listen: at least one of udp/tcp must be enabled")
    return settings
