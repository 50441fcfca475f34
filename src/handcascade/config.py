"""
Engine configuration.

Callers pass a flat mapping with any subset of the keys of
`DEFAULT_ENGINE_CONFIG`; missing keys are filled in from the defaults.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Union

from .errors import ConfigurationError


DEFAULT_ENGINE_CONFIG: Dict[str, Any] = {
    # Mirror result coordinates, i.e. [x, y] becomes [1 - x, y]. Webcam
    # streams are usually displayed mirrored.
    "mirror_x": True,
    # Fraction of the frame removed at each border of the result coordinates.
    "padding": 0.0,
    # Below this hand presence probability the box model searches for a hand again.
    "min_hand_presence_probability_threshold": 0.5,
    # Margin around the hand, relative to the hand size, kept when cropping
    # the next frame. Changing it requires retrained models.
    "box_slack": 0.75,
    "user_friendly_coordinate_order": True,
}


@dataclass(frozen=True)
class EngineConfig:
    mirror_x: bool = True
    padding: float = 0.0
    min_hand_presence_probability_threshold: float = 0.5
    box_slack: float = 0.75
    user_friendly_coordinate_order: bool = True


def apply_config_defaults(src: Any, trg: Any) -> Any:
    """
    Fill every field of `src` that is missing in `trg`, recursively.

    Values present in `trg` are never overwritten. If `trg` is None a copy of
    `src` is returned. Neither argument is modified.
    """
    if trg is None:
        return copy.deepcopy(src)
    trg = copy.deepcopy(trg)
    _apply_config_defaults_internal(src, trg)
    return trg


def _apply_config_defaults_internal(src: Any, trg: Any) -> None:
    if not isinstance(src, Mapping) or not isinstance(trg, dict):
        return
    for key, value in src.items():
        if key in trg:
            _apply_config_defaults_internal(value, trg[key])
        else:
            trg[key] = copy.deepcopy(value)


def resolve_engine_config(config: Union[None, Mapping[str, Any], EngineConfig]) -> EngineConfig:
    """Merge `config` over the defaults and validate the result."""
    if isinstance(config, EngineConfig):
        config = asdict(config)
    if config is not None and not isinstance(config, Mapping):
        raise ConfigurationError(f"Engine config must be a mapping, got {type(config).__name__}.")

    merged = apply_config_defaults(DEFAULT_ENGINE_CONFIG, dict(config) if config is not None else None)

    unknown = sorted(set(merged) - set(DEFAULT_ENGINE_CONFIG))
    if unknown:
        raise ConfigurationError(f"Unknown engine config keys: {unknown}. Known: {sorted(DEFAULT_ENGINE_CONFIG)}")

    try:
        cfg = EngineConfig(
            mirror_x=bool(merged["mirror_x"]),
            padding=float(merged["padding"]),
            min_hand_presence_probability_threshold=float(merged["min_hand_presence_probability_threshold"]),
            box_slack=float(merged["box_slack"]),
            user_friendly_coordinate_order=bool(merged["user_friendly_coordinate_order"]),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid engine config: {e}") from e

    if not (0.0 <= cfg.padding < 0.5):
        raise ConfigurationError(f"padding must be in [0, 0.5), got {cfg.padding}.")
    if not (0.0 <= cfg.min_hand_presence_probability_threshold <= 1.0):
        raise ConfigurationError(
            "min_hand_presence_probability_threshold must be in [0, 1], "
            f"got {cfg.min_hand_presence_probability_threshold}."
        )
    if cfg.box_slack < 0.0:
        raise ConfigurationError(f"box_slack must not be negative, got {cfg.box_slack}.")
    return cfg

