"""ragstore configuration loader.

Priority (high → low):
  1. Explicit arguments  (handled at call site, not in this module)
  2. Environment variables  (RAGSTORE_EMBEDDING_PROVIDER, RAGSTORE_EMBEDDING_MODEL,
     RAGSTORE_DB_PATH)
  3. Per-project ragstore.yaml
  4. Global ~/.ragstore/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Changing ``embedding.model`` invalidates every stored vector: the store must be
cleared and fully re-indexed, never patched incrementally.
Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import math
import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ragstore.errors import ConfigError
from ragstore.metadata import DEFAULT_METADATA_FIELDS, MetadataSchema

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".ragstore"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "ragstore.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like model_token_limit or target_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["embedding", "chunking", "store", "metadata"])

EMBEDDING_PROVIDERS: frozenset[str] = frozenset(["litellm", "sentence-transformers"])
TOKEN_COUNTERS: frozenset[str] = frozenset(["approximate", "litellm"])
DISTANCE_METRICS: frozenset[str] = frozenset(["l2", "cosine"])


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding provider configuration (ragstore.yaml: embedding:).

    Attributes:
        provider: 'litellm' (remote, any LiteLLM embedding model) or
            'sentence-transformers' (local model, needs the ``local`` extra).
        model: Model identifier passed to the provider.
        dimensions: Vector size. Optional for models with a known size.
        batch_size: Maximum texts per embedding request.
    """

    provider: str = "litellm"
    model: str = "openai/text-embedding-3-small"
    dimensions: int | None = None
    batch_size: int = 64


@dataclass
class ChunkingCfg:
    """Chunk sizing (ragstore.yaml: chunking:)."""

    target_size: int = 512
    padding_factor: float = 0.9
    model_token_limit: int = 8_191
    token_counter: str = "approximate"


@dataclass
class StoreCfg:
    """Vector store location and search settings (ragstore.yaml: store:).

    Attributes:
        path: SQLite database file.
        distance_metric: 'l2' or 'cosine'.
        store_documents: Keep full document text in the documents table. The
            row itself is always written because change detection depends on it.
    """

    path: str = ".ragstore.db"
    distance_metric: str = "l2"
    store_documents: bool = True


@dataclass
class MetadataCfg:
    """Frontmatter fields copied onto every chunk (ragstore.yaml: metadata.fields)."""

    fields: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_METADATA_FIELDS))


@dataclass
class RagStoreConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    store: StoreCfg = field(default_factory=StoreCfg)
    metadata: MetadataCfg = field(default_factory=MetadataCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def validate_config(cfg: RagStoreConfig) -> RagStoreConfig:
    """Raise ConfigError for out-of-range or unknown values; return *cfg* unchanged."""
    if cfg.embedding.provider not in EMBEDDING_PROVIDERS:
        raise ConfigError(
            f"Unknown embedding.provider '{cfg.embedding.provider}'. "
            f"Choose one of: {', '.join(sorted(EMBEDDING_PROVIDERS))}"
        )
    if not cfg.embedding.model:
        raise ConfigError("embedding.model must not be empty")
    if cfg.embedding.dimensions is not None and cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    if cfg.embedding.batch_size < 1:
        raise ConfigError(f"embedding.batch_size must be >= 1, got {cfg.embedding.batch_size}")

    ch = cfg.chunking
    if ch.target_size < 1:
        raise ConfigError(f"chunking.target_size must be >= 1, got {ch.target_size}")
    if not 0.0 < ch.padding_factor <= 1.0:
        raise ConfigError(
            f"chunking.padding_factor must be in (0, 1], got {ch.padding_factor}"
        )
    if ch.model_token_limit < 1:
        raise ConfigError(
            f"chunking.model_token_limit must be >= 1, got {ch.model_token_limit}"
        )
    effective_target = max(1, math.floor(ch.target_size * ch.padding_factor))
    if effective_target > ch.model_token_limit:
        raise ConfigError(
            f"chunking.target_size * chunking.padding_factor ({effective_target}) must not "
            f"exceed chunking.model_token_limit ({ch.model_token_limit})"
        )
    if ch.token_counter not in TOKEN_COUNTERS:
        raise ConfigError(
            f"Unknown chunking.token_counter '{ch.token_counter}'. "
            f"Choose one of: {', '.join(sorted(TOKEN_COUNTERS))}"
        )

    if cfg.store.distance_metric not in DISTANCE_METRICS:
        raise ConfigError(
            f"Unknown store.distance_metric '{cfg.store.distance_metric}'. "
            f"Choose one of: {', '.join(sorted(DISTANCE_METRICS))}"
        )

    # Field names and types are checked by the schema itself.
    MetadataSchema(cfg.metadata.fields)
    return cfg


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> RagStoreConfig:
    """Build a *RagStoreConfig* from a merged raw YAML dict."""
    cfg = RagStoreConfig()

    try:
        if "embedding" in data:
            e = data["embedding"] or {}
            dims = e.get("dimensions", cfg.embedding.dimensions)
            cfg.embedding = EmbeddingCfg(
                provider=str(e.get("provider", cfg.embedding.provider)),
                model=str(e.get("model", cfg.embedding.model)),
                dimensions=int(dims) if dims is not None else None,
                batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            )

        if "chunking" in data:
            c = data["chunking"] or {}
            cfg.chunking = ChunkingCfg(
                target_size=int(c.get("target_size", cfg.chunking.target_size)),
                padding_factor=float(c.get("padding_factor", cfg.chunking.padding_factor)),
                model_token_limit=int(
                    c.get("model_token_limit", cfg.chunking.model_token_limit)
                ),
                token_counter=str(c.get("token_counter", cfg.chunking.token_counter)),
            )

        if "store" in data:
            s = data["store"] or {}
            cfg.store = StoreCfg(
                path=str(s.get("path", cfg.store.path)),
                distance_metric=str(s.get("distance_metric", cfg.store.distance_metric)),
                store_documents=bool(s.get("store_documents", cfg.store.store_documents)),
            )

        if "metadata" in data:
            m = data["metadata"] or {}
            raw_fields = m.get("fields")
            if raw_fields is not None:
                if not isinstance(raw_fields, dict):
                    raise ConfigError("metadata.fields must be a mapping of name → type")
                cfg.metadata = MetadataCfg(
                    fields={str(k): str(v) for k, v in raw_fields.items()}
                )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: RagStoreConfig) -> RagStoreConfig:
    """Apply RAGSTORE_* environment variable overrides."""
    if provider := os.environ.get("RAGSTORE_EMBEDDING_PROVIDER"):
        cfg.embedding.provider = provider
    if model := os.environ.get("RAGSTORE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("RAGSTORE_DB_PATH"):
        cfg.store.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RagStoreConfig:
    """Load and return a merged, validated *RagStoreConfig*.

    Applies layers in order: global → per-project → env vars.

    Args:
        project_dir: Directory to search for *ragstore.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *RagStoreConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or any
            value is out of range or unknown.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return validate_config(cfg)
