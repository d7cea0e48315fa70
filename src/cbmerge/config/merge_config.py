# merge_config.py
from __future__ import annotations
import ast
import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, IO, List, Optional, Tuple, Union

import pandas as pd
import yaml

from cbmerge.constants import (
    DEFAULT_FRAGMENT2_OFFSET,
    DISTANCE_BACKENDS,
    MAX_REAL_MERGE_EDIT_DISTANCE,
)


# -------------------------
# Utility parsing functions
# -------------------------
def _parse_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    s = str(v).strip().lower()
    if s in ("1", "true", "t", "yes", "y", "on"):
        return True
    if s in ("0", "false", "f", "no", "n", "off", ""):
        return False
    try:
        return float(s) != 0.0
    except ValueError:
        return False


def _parse_numeric(v: Any, fallback: Any = None) -> Any:
    if v is None:
        return fallback
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return v
    s = str(v).strip()
    if s == "" or s.lower() == "none":
        return fallback
    try:
        return int(s)
    except ValueError:
        try:
            return float(s)
        except ValueError:
            return fallback


def _require_numeric(key: str, v: Any) -> Any:
    parsed = _parse_numeric(v)
    if parsed is None:
        raise ValueError(f"{key} must be numeric; got {v!r}.")
    return parsed


def _try_json_or_literal(s: Any) -> Any:
    """Try parse JSON or python literal; otherwise return original string."""
    if s is None:
        return None
    if not isinstance(s, str):
        return s
    s0 = s.strip()
    if s0 == "":
        return None
    try:
        return json.loads(s0)
    except ValueError:
        pass
    try:
        return ast.literal_eval(s0)
    except (ValueError, SyntaxError, TypeError):
        pass
    return s


class LoadMergeConfig:
    """
    Load a merge config CSV (or DataFrame / file-like) into a typed var_dict.

    CSV expected columns: 'variable', 'value', optional 'type'.
    If 'type' missing, the loader will infer type.

    Example
    -------
    loader = LoadMergeConfig("merge_config.csv")
    var_dict = loader.var_dict
    """

    def __init__(self, merge_config: Union[str, Path, IO, pd.DataFrame]):
        self.source = merge_config
        self.df = self._load_df(merge_config)
        self.var_dict = self._parse_df(self.df)

    @staticmethod
    def _load_df(source: Union[str, Path, IO, pd.DataFrame]) -> pd.DataFrame:
        """Load a pandas DataFrame from path, file-like, or accept if already DataFrame."""
        if isinstance(source, pd.DataFrame):
            df = source.copy()
        else:
            if isinstance(source, (str, Path)):
                p = Path(source)
                if not p.exists():
                    raise FileNotFoundError(f"Config file not found: {source}")
                df = pd.read_csv(p, dtype=str, keep_default_na=False, na_values=[""])
            else:
                # file-like
                df = pd.read_csv(source, dtype=str, keep_default_na=False, na_values=[""])
        df.columns = [c.strip() for c in df.columns]
        if "variable" not in df.columns:
            raise ValueError("Config CSV must contain a 'variable' column.")
        if "value" not in df.columns:
            df["value"] = ""
        if "type" not in df.columns:
            df["type"] = ""
        return df

    @staticmethod
    def _parse_value_as_type(value_str: Optional[str], dtype_hint: Optional[str]) -> Any:
        """
        Parse a single value string into a Python object guided by dtype_hint (or infer).
        Supports int, float, bool, JSON, Python literal, or string.
        """
        if value_str is None or (isinstance(value_str, float) and pd.isna(value_str)):
            return None
        v = str(value_str).strip()
        if v == "" or v.lower() == "none":
            return None

        hint = (dtype_hint or "").strip().lower()
        if hint in ("int", "integer"):
            return int(float(v))
        if hint in ("float", "double"):
            return float(v)
        if hint in ("bool", "boolean"):
            return _parse_bool(v)
        if hint in ("str", "string"):
            return v

        # infer
        if v.lower() in ("true", "false"):
            return _parse_bool(v)
        numeric = _parse_numeric(v)
        if numeric is not None:
            return numeric
        return _try_json_or_literal(v)

    def _parse_df(self, df: pd.DataFrame) -> Dict[str, Any]:
        var_dict: Dict[str, Any] = {}
        for _, row in df.iterrows():
            name = str(row["variable"]).strip()
            if not name:
                continue
            hint = row.get("type")
            hint = None if hint is None or (isinstance(hint, float) and pd.isna(hint)) else str(hint)
            var_dict[name] = self._parse_value_as_type(row.get("value"), hint)
        return var_dict

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"variable": k, "value": v} for k, v in self.var_dict.items()]
        )


@dataclass
class MergeConfig:
    # Catalog
    barcodes_file: Optional[str] = None
    barcode2_length: Optional[int] = None
    fragment2_offset: int = DEFAULT_FRAGMENT2_OFFSET

    # Merge thresholds
    min_genes_before_merge: int = 20
    min_genes_after_merge: int = 100
    max_merge_edit_distance: int = 2 # Used by sibling strategies, not the catalog neighbour bound
    min_merge_fraction: float = 0.2
    max_real_merge_edit_distance: int = MAX_REAL_MERGE_EDIT_DISTANCE
    distance_backend: str = "auto"

    # General I/O
    cells_table: Optional[str] = None
    output_directory: Optional[str] = None
    experiment_name: Optional[str] = None
    write_h5ad: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    config_source: Optional[str] = None

    @classmethod
    def from_var_dict(
        cls,
        var_dict: Dict[str, Any],
        config_source: Optional[str] = None,
        validate: bool = True,
    ) -> Tuple["MergeConfig", Dict[str, Any]]:
        """
        Build a MergeConfig from a flat mapping of variable -> value.

        Unknown keys are ignored and returned in the report under 'unknown_keys'.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        unknown: List[str] = []
        for key, raw in var_dict.items():
            if key not in known:
                unknown.append(key)
                continue
            if raw is None:
                continue
            kwargs[key] = raw

        for key in ("barcode2_length", "fragment2_offset", "min_genes_before_merge",
                    "min_genes_after_merge", "max_merge_edit_distance", "max_real_merge_edit_distance"):
            if key in kwargs:
                kwargs[key] = int(_require_numeric(key, kwargs[key]))
        if "min_merge_fraction" in kwargs:
            kwargs["min_merge_fraction"] = float(_require_numeric("min_merge_fraction", kwargs["min_merge_fraction"]))
        if "write_h5ad" in kwargs:
            kwargs["write_h5ad"] = _parse_bool(kwargs["write_h5ad"])
        for key in ("barcodes_file", "cells_table", "output_directory", "experiment_name",
                    "distance_backend", "log_level", "log_file"):
            if key in kwargs:
                kwargs[key] = str(kwargs[key])

        kwargs["config_source"] = config_source
        instance = cls(**kwargs)
        if validate:
            instance.validate()
        report = {"unknown_keys": unknown, "config_source": config_source}
        return instance, report

    # convenience: load from CSV via LoadMergeConfig
    @classmethod
    def from_csv(
        cls,
        csv_input: Union[str, Path, IO, pd.DataFrame],
        **kwargs,
    ) -> Tuple["MergeConfig", Dict[str, Any]]:
        """
        Load CSV using LoadMergeConfig (or accept DataFrame) and build MergeConfig.
        Additional kwargs passed to from_var_dict().
        """
        loader = LoadMergeConfig(csv_input)
        source = str(csv_input) if isinstance(csv_input, (str, Path)) else None
        return cls.from_var_dict(loader.var_dict, config_source=source, **kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **kwargs) -> Tuple["MergeConfig", Dict[str, Any]]:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = yaml.safe_load(p.read_text(encoding="utf8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"YAML config must be a mapping, got {type(data).__name__}")
        return cls.from_var_dict(data, config_source=str(p), **kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> Tuple["MergeConfig", Dict[str, Any]]:
        """Dispatch on suffix: .yaml/.yml -> YAML, anything else -> variable/value CSV."""
        if Path(path).suffix.lower() in (".yaml", ".yml"):
            return cls.from_yaml(path, **kwargs)
        return cls.from_csv(path, **kwargs)

    # -------------------------
    # validation & serialization
    # -------------------------
    def validate(self, raise_on_error: bool = True) -> List[str]:
        """
        Validate the config.
        Returns a list of error messages (empty if none). Raises ValueError if raise_on_error True.
        """
        errors: List[str] = []
        if not self.barcodes_file:
            errors.append("barcodes_file is required but missing.")
        if self.barcode2_length is None:
            errors.append("barcode2_length is required but missing.")
        elif self.barcode2_length < 1:
            errors.append("barcode2_length must be positive.")
        if self.fragment2_offset < 0:
            errors.append("fragment2_offset must be >= 0.")
        elif self.barcode2_length is not None and self.fragment2_offset >= self.barcode2_length:
            errors.append("fragment2_offset must be smaller than barcode2_length.")
        if self.min_genes_before_merge < 0 or self.min_genes_after_merge < 0:
            errors.append("min_genes_before_merge and min_genes_after_merge must be >= 0.")
        if self.max_merge_edit_distance < 0 or self.max_real_merge_edit_distance < 0:
            errors.append("Edit distance bounds must be >= 0.")
        if not (0.0 <= float(self.min_merge_fraction) <= 1.0):
            errors.append("min_merge_fraction must be in [0,1].")
        if self.distance_backend not in DISTANCE_BACKENDS:
            errors.append(
                f"distance_backend must be one of {DISTANCE_BACKENDS}; got '{self.distance_backend}'."
            )

        if raise_on_error and errors:
            raise ValueError("MergeConfig validation failed:\n  " + "\n  ".join(errors))
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self, path: Optional[Union[str, Path]] = None) -> str:
        """Dump config to YAML (string if path None) or save to file at path."""
        text = yaml.safe_dump(self.to_dict(), sort_keys=False)
        if path is None:
            return text
        p = Path(path)
        p.write_text(text, encoding="utf8")
        return str(p)

    def save(self, path: Union[str, Path]) -> str:
        return self.to_yaml(path)

    def __repr__(self) -> str:
        return f"<MergeConfig barcodes_file={self.barcodes_file} experiment_name={self.experiment_name} source={self.config_source}>"
