"""
Runtime settings, read from environment variables (and an optional YAML file).

Sites and their API keys:
  HELPJUICE_SITES   comma-separated site names, e.g. "jbase,zumasys"
  <SITE>_API_KEY    key for each site, e.g. JBASE_API_KEY
  HELPJUICE_CONFIG  optional YAML file; its `sites` mapping is merged with the
                    environment (environment wins) and it may override
                    `legacy_hosts`, `internal_hosts` and `asset_host`.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError

# Deprecated hostnames rewritten before an image or link is resolved. Each rule
# runs on the output of the previous one, so more specific patterns go first.
DEFAULT_LEGACY_HOSTS = (
    (r"^https?://(?:www\.)?jbase\.com/r5/knowledgebase", "https://docs.jbase.com"),
    (r"^https?://(?:www\.)?jbase\.com/r5", "https://static.zumasys.com/jbase/r99"),
)

# Images on this host are already stable and are left where they are.
DEFAULT_ASSET_HOST = "s3.amazonaws.com"


@dataclass(frozen=True)
class Settings:
    sites: dict
    output_dir: Path = Path("/output")
    rate_limit: float = 0.1
    request_timeout: float = 30.0
    frontmatter: bool = False
    md_heading_style: str = "ATX"
    index_name: str = "README.md"
    asset_host: str = DEFAULT_ASSET_HOST
    legacy_hosts: tuple = DEFAULT_LEGACY_HOSTS
    internal_hosts: tuple = field(default_factory=tuple)

    def site_internal_hosts(self, site):
        """Hosts whose links are treated as references into the exported KB."""
        name = site.lower()
        return (f"{name}.helpjuice.com", f"docs.{name}.com") + tuple(h.lower() for h in self.internal_hosts)


def _split(value):
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def _flag(value, default):
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _number(env, name, default):
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_config_file(path):
    """Read the optional YAML config file. Returns {} for an empty file."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _legacy_table(raw):
    # YAML shape: [{pattern: "...", replacement: "..."}, ...]
    table = []
    for entry in raw:
        try:
            table.append((entry["pattern"], entry["replacement"]))
        except (KeyError, TypeError):
            raise ConfigError(f"legacy_hosts entries need 'pattern' and 'replacement': {entry!r}") from None
    return tuple(table)


def load_settings(env=None):
    env = os.environ if env is None else env

    file_cfg = {}
    if env.get("HELPJUICE_CONFIG"):
        file_cfg = load_config_file(env["HELPJUICE_CONFIG"])

    sites = {str(k): str(v) if v is not None else "" for k, v in (file_cfg.get("sites") or {}).items()}
    for site in _split(env.get("HELPJUICE_SITES")):
        key = env.get(f"{site.upper()}_API_KEY") or sites.get(site)
        if not key:
            raise ConfigError(f"Set {site.upper()}_API_KEY for site {site!r}")
        sites[site] = key

    if not sites:
        raise ConfigError("No sites configured: set HELPJUICE_SITES or list them under 'sites' in HELPJUICE_CONFIG")
    missing = [site for site, key in sites.items() if not key]
    if missing:
        raise ConfigError(f"Missing API key for: {', '.join(missing)}")

    internal_hosts = list(file_cfg.get("internal_hosts") or []) + _split(env.get("INTERNAL_HOSTS"))
    legacy = _legacy_table(file_cfg["legacy_hosts"]) if "legacy_hosts" in file_cfg else DEFAULT_LEGACY_HOSTS

    return Settings(
        sites=sites,
        output_dir=Path(env.get("OUTPUT_DIR") or "/output"),
        rate_limit=_number(env, "RATE_LIMIT", 0.1),
        request_timeout=_number(env, "REQUEST_TIMEOUT", 30.0),
        frontmatter=_flag(env.get("FRONTMATTER"), False),
        md_heading_style=env.get("MD_HEADING_STYLE") or "ATX",
        index_name=env.get("INDEX_NAME") or "README.md",
        asset_host=(env.get("ASSET_HOST") or file_cfg.get("asset_host") or DEFAULT_ASSET_HOST).lower(),
        legacy_hosts=legacy,
        internal_hosts=tuple(internal_hosts),
    )
