"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import AdocviewConfig


def config_paths(cli_path: str | None = None) -> list[Path]:
    """Candidate config files in resolution order."""
    paths = [
        Path("./adocview.yaml"),
        Path.home() / ".adocview" / "config.yaml",
    ]
    if cli_path:
        paths.insert(0, Path(cli_path))
    return paths


def load_config(cli_path: str | None = None) -> AdocviewConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    if cli_path and not Path(cli_path).exists():
        raise ValueError(f"Config file not found: {cli_path}")

    for path in config_paths(cli_path):
        if path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                if not isinstance(raw, dict):
                    raise ValueError(f"Invalid config in {path}: expected a mapping")
                raw = _expand_env_vars(raw)
                return AdocviewConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return AdocviewConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `adocview config init`
DEFAULT_CONFIG_TEMPLATE = """\
# adocview.yaml

# Conversion server
service:
  base_url: "http://localhost:8005"
  timeout: 30                  # seconds per request, no retries

# Watch daemon
watcher:
  url: "http://localhost:8006"
  reconnect_delay: 5           # seconds between reconnect attempts
  extensions: [".adoc", ".asciidoc"]
  debounce_seconds: 2          # local watcher only

# Automatic conversion queue
queue:
  output_type: "xml"           # xml | html5 | xhtml | xhtml5 | md2adoc
  timeout: 120                 # seconds before an item is marked error
  settle_delay: 0.1
  prune_completed: false
  write_outputs: true          # write results next to the source file

# XSLT applied to XML output
stylesheet:
  path: null                   # e.g. "./stylesheet.xsl"; null uses the server default

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
