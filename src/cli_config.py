"""Configuration assembly for a survey run.

Settings come from Constants, then an optional YAML/JSON config file, then
the environment, then CLI flags (highest precedence).

Example config file::

    metacpan_url: https://fastapi.metacpan.org/v1
    page_size: 999
    size_mismatch_weight: 0.1
    workers: 4
    perlver: "5.10.1"
    distro_key_module_names:
      Foo-Tools: Foo::Util
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants
from analysis.context import SurveyConfig

logger = logging.getLogger(__name__)


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML (or JSON) file.

    Returns an empty dict when no path is given or the file is missing,
    unreadable or malformed.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    # YAML is a superset of JSON, so one loader covers both formats
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        logger.warning("Ignoring config file %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a mapping", config_path)
        return {}
    return data


def _coerce(settings: Dict[str, Any], key: str, kind, default):
    if settings.get(key) is None:
        return default
    try:
        return kind(settings[key])
    except (TypeError, ValueError):
        logger.warning("Invalid value for %s in config: %r; using %r", key, settings[key], default)
        return default


def build_config(args) -> SurveyConfig:
    """Build the effective SurveyConfig for parsed CLI args."""
    settings = load_config_file(getattr(args, "CONFIG", None))
    defaults = SurveyConfig()

    key_mods = dict(Constants.DISTRO_KEY_MODULE_NAMES)
    extra = settings.get("distro_key_module_names")
    if isinstance(extra, dict):
        key_mods.update({str(k): str(v) for k, v in extra.items()})

    config = SurveyConfig(
        metacpan_url=str(settings.get("metacpan_url") or defaults.metacpan_url),
        page_size=_coerce(settings, "page_size", int, defaults.page_size),
        size_mismatch_weight=_coerce(settings, "size_mismatch_weight", float, defaults.size_mismatch_weight),
        include_remnants=bool(settings.get("remnants", defaults.include_remnants)),
        use_cache=not bool(settings.get("uncached", False)),
        cache_file=str(settings.get("cache_file") or defaults.cache_file),
        workers=_coerce(settings, "workers", int, defaults.workers),
        match=settings.get("match"),
        perlver=None if settings.get("perlver") is None else str(settings["perlver"]),
        corelist_file=settings.get("corelist_file"),
        perl_command=str(settings.get("perl_command") or defaults.perl_command),
        distro_key_module_names=key_mods,
    )

    env_url = os.environ.get(Constants.ENV_METACPAN_URL)
    if env_url and env_url.strip():
        config.metacpan_url = env_url.strip()

    if getattr(args, "MATCH", None):
        config.match = args.MATCH
    if getattr(args, "PERLVER", None):
        config.perlver = args.PERLVER
    if getattr(args, "CORELIST", None):
        config.corelist_file = args.CORELIST
    if getattr(args, "REMNANTS", False):
        config.include_remnants = True
    if getattr(args, "UNCACHED", False):
        config.use_cache = False
    if getattr(args, "CACHE_FILE", None):
        config.cache_file = args.CACHE_FILE
    if getattr(args, "WORKERS", None) is not None:
        config.workers = max(1, int(args.WORKERS))
    config.verbose = bool(getattr(args, "VERBOSE", False) or getattr(args, "DEBUG", False))

    if not 0 <= config.size_mismatch_weight <= 1:
        logger.warning(
            "size_mismatch_weight %s out of range; using %s",
            config.size_mismatch_weight,
            Constants.SIZE_MISMATCH_WEIGHT,
        )
        config.size_mismatch_weight = Constants.SIZE_MISMATCH_WEIGHT
    return config
