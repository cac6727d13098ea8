"""
Configuration loading for AMP runs.

Resolution order (later wins):
    defaults (config/defaults.py) -> YAML file (with ``_base`` chain)
    -> dot-notation overrides from the CLI

The merged dict is validated by PipelineConfig; schema failures surface as
ValueError so the CLI can report them uniformly.
"""

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from amp_ml.config.defaults import (
    DEFAULT_CONSENSUS_CONFIG,
    DEFAULT_DATA_CONFIG,
    DEFAULT_EVALUATION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    DEFAULT_SELECTION_CONFIG,
    DEFAULT_SPLIT_CONFIG,
    DEFAULT_STRICTNESS_CONFIG,
    DEFAULT_WEIGHT_CONFIG,
)
from amp_ml.config.schema import PipelineConfig

# Override values kept verbatim (never coerced to numbers, lists or booleans)
STRING_KEYS = {"run_id", "feature_prefix"}

# Filesystem paths; relative values in a YAML file resolve against its directory
PATH_KEYS = {"infile", "outdir"}

_TRUE = {"true", "yes"}
_FALSE = {"false", "no"}
_NONE = {"none", "null"}


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """New dict with overlay merged into base; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """
    Read a YAML config, following its ``_base`` chain.

    ``_base`` names another YAML file relative to this one; it is loaded first
    and this file's values are merged on top.

    Raises:
        FileNotFoundError: If the file (or a base file) does not exist
    """
    path = Path(file_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    base = data.pop("_base", None)
    if base is None:
        return data
    return _deep_merge(load_yaml(path.parent / base), data)


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: Path
) -> dict[str, Any]:
    """Return a copy of config_dict with relative PATH_KEYS values anchored at the config file."""
    anchor = Path(config_file).resolve().parent

    def _walk(node: dict[str, Any]) -> dict[str, Any]:
        out = {}
        for key, value in node.items():
            if isinstance(value, dict):
                value = _walk(value)
            elif key in PATH_KEYS and isinstance(value, str) and not Path(value).is_absolute():
                value = str(anchor / value)
            out[key] = value
        return out

    return _walk(config_dict)


def _coerce_scalar(text: str) -> Any:
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def _coerce_override(text: str) -> Any:
    """bool / None / comma list / int / float, falling back to the raw string."""
    lowered = text.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    if lowered in _NONE:
        return None
    if "," in text:
        return [_coerce_scalar(part.strip()) for part in text.split(",")]
    return _coerce_scalar(text)


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply "section.key=value" overrides in place.

    Examples:
        split.seed=3
        selection.ensemble_tree.top_k=50
        consensus.allow_reduced=false

    Missing intermediate sections are created.

    Raises:
        ValueError: If an override has no '='
    """
    for override in overrides:
        key_path, sep, raw = override.partition("=")
        if not sep:
            raise ValueError(f"Invalid override format: {override}. Expected 'key=value'")

        *parents, leaf = key_path.strip().split(".")
        node = config_dict
        for key in parents:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]

        raw = raw.strip()
        node[leaf] = raw if leaf in STRING_KEYS or leaf in PATH_KEYS else _coerce_override(raw)

    return config_dict


def default_config_dict() -> dict[str, Any]:
    """Fresh (deep-copied) dict of every default value."""
    return copy.deepcopy(
        {
            "data": DEFAULT_DATA_CONFIG,
            "split": DEFAULT_SPLIT_CONFIG,
            "selection": DEFAULT_SELECTION_CONFIG,
            "consensus": DEFAULT_CONSENSUS_CONFIG,
            "weights": DEFAULT_WEIGHT_CONFIG,
            "evaluation": DEFAULT_EVALUATION_CONFIG,
            "output": DEFAULT_OUTPUT_CONFIG,
            "strictness": DEFAULT_STRICTNESS_CONFIG,
        }
    )


def load_pipeline_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> PipelineConfig:
    """
    Build a validated PipelineConfig.

    Args:
        config_file: Optional YAML file
        overrides: Optional "key=value" strings applied last

    Returns:
        PipelineConfig

    Raises:
        FileNotFoundError: If config_file does not exist
        ValueError: If the merged configuration fails schema validation
    """
    config_dict = default_config_dict()

    if config_file is not None:
        from_file = resolve_paths_relative_to_config(load_yaml(config_file), Path(config_file))
        config_dict = _deep_merge(config_dict, from_file)

    if overrides:
        apply_overrides(config_dict, overrides)

    try:
        return PipelineConfig(**config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid pipeline configuration:\n{e}") from e


def save_config(config: PipelineConfig, output_path: str | Path):
    """Write the resolved configuration as YAML (paths stored as strings)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
