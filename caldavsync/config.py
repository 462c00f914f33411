"""
Connection configuration.

A ClientConfig can be given directly, or it can be assembled by
``get_config`` from keyword arguments, environment variables prepended
with ``CALDAV_`` or a JSON config file, in that order - the first
source yielding anything wins.

Config file format: a JSON object with one object per section.  A
section may pull in another section through the ``inherits`` key.
Connection keys are prepended with ``caldav_``::

    {
        "default": {"caldav_url": "https://cal.example.com/dav/",
                    "caldav_user": "alice", "caldav_pass": "secret"},
        "work": {"inherits": "default", "caldav_user": "alice.w"}
    }
"""
import json
import logging
import os
from dataclasses import dataclass
from dataclasses import fields
from typing import Any
from typing import Dict
from typing import Optional
from typing import Union

log = logging.getLogger("caldavsync")

DEFAULT_PRODID = "-//caldavsync//caldavsync//EN"

## short aliases accepted in config files and environment
KEY_ALIASES = {
    "user": "username",
    "pass": "password",
}


@dataclass(frozen=True)
class ClientConfig:
    """
    Everything needed to talk to one CalDAV server.

    If ``token`` is set, bearer authentication is used and the
    username/password pair is ignored.  ``discovery_path`` overrides
    where the current user principal is looked up.
    """

    url: str
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    timeout: Optional[float] = 30.0
    prodid: str = DEFAULT_PRODID
    log_requests: bool = False
    discovery_path: Optional[str] = None
    ssl_verify_cert: Union[bool, str] = True

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("No CalDAV server URL configured")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """
        Build a config from loosely typed key/value pairs, as found in
        the environment or in a config file.  Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        params: Dict[str, Any] = {}
        for key, value in data.items():
            key = KEY_ALIASES.get(key, key)
            if key not in known:
                log.debug(f"ignoring unknown configuration key {key}")
                continue
            params[key] = value

        if isinstance(params.get("timeout"), str):
            params["timeout"] = float(params["timeout"])
        for key in ("log_requests", "ssl_verify_cert"):
            if isinstance(params.get(key), str):
                params[key] = _to_bool(params[key])
        if "url" not in params:
            raise ValueError("No CalDAV server URL configured")
        return cls(**params)


def _to_bool(value: str) -> Union[bool, str]:
    lowered = value.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    ## ssl_verify_cert may be a path to a CA bundle
    return value


def config_section(config: Dict[str, Any], section: str = "default") -> Dict[str, Any]:
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    return ret


def read_config(fn: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Read a JSON config file.  With no file name given, the default
    locations are tried in order.  A missing or broken file is logged
    and treated as empty.
    """
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config"
        for config_file in (
            f"{cfgdir}/caldavsync/calendar.conf",
            f"{cfgdir}/calendar.conf",
            "/etc/caldavsync/calendar.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return None

    try:
        with open(fn, "rb") as config_file:
            return json.load(config_file)
    except FileNotFoundError:
        log.info(f"no config file found at {fn}")
    except ValueError:
        log.error(f"error in config file {fn}.  It will be ignored", exc_info=True)
    return {}


def get_config(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section_name: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> ClientConfig:
    """
    Assemble a ClientConfig, reading from these sources in order:

    * The keyword arguments given
    * Environment variables prepended with `CALDAV_`, like `CALDAV_URL`,
      `CALDAV_USERNAME`, `CALDAV_PASSWORD`, `CALDAV_TOKEN`, `CALDAV_TIMEOUT`
    * The config file, from `config_file`, `CALDAV_CONFIG_FILE` or the
      default locations; section from `config_section_name`,
      `CALDAV_CONFIG_SECTION` or "default"

    Raises:
        ValueError: if none of the sources yields a server URL
    """
    if config_data:
        return ClientConfig.from_dict(config_data)

    if environment:
        conf = {}
        for conf_key in (
            x
            for x in os.environ
            if x.startswith("CALDAV_") and not x.startswith("CALDAV_CONFIG")
        ):
            conf[conf_key[7:].lower()] = os.environ[conf_key]
        if conf:
            return ClientConfig.from_dict(conf)
        if not config_file:
            config_file = os.environ.get("CALDAV_CONFIG_FILE")
        if not config_section_name:
            config_section_name = os.environ.get("CALDAV_CONFIG_SECTION")

    if check_config_file:
        cfg = read_config(config_file)
        if cfg:
            section = config_section(cfg, config_section_name or "default")
            conn_params = {}
            for k in section:
                if k.startswith("caldav_") and section[k]:
                    conn_params[k[7:]] = section[k]
            if conn_params:
                return ClientConfig.from_dict(conn_params)

    raise ValueError("No CalDAV server URL configured")
