"""
Effect registry and dispatch.

Maps effect identifiers to strategy instances. Strategies hold no per-frame
state, so one shared instance per effect serves every face and frame.
"""

import logging
from typing import Dict, Optional

from .config import EFFECT_TYPES, DEFAULT_EFFECT
from .displacement import StretchStrategy, BulgeStrategy, TwistStrategy
from .obfuscation import BlurStrategy, MosaicStrategy
from .overlay import DazzleStrategy, CvDazzleStrategy, JuggaloStrategy, FacePaintStrategy
from .shading import Gan3dStrategy, ContourStrategy
from .strategy import DistortionStrategy

logger = logging.getLogger(__name__)


def _build_registry() -> Dict[str, DistortionStrategy]:
    strategies = [
        StretchStrategy(),
        BulgeStrategy(),
        TwistStrategy(),
        DazzleStrategy(),
        JuggaloStrategy(),
        Gan3dStrategy(),
        ContourStrategy(),
        CvDazzleStrategy(),
        FacePaintStrategy(),
        BlurStrategy(),
        MosaicStrategy(),
    ]
    registry = {strategy.name: strategy for strategy in strategies}
    assert tuple(registry) == EFFECT_TYPES, "registry out of sync with EFFECT_TYPES"
    return registry


REGISTRY: Dict[str, DistortionStrategy] = _build_registry()


def dispatch(effect_type: Optional[str]) -> DistortionStrategy:
    """
    Look up the strategy for an effect identifier.

    Unknown identifiers and None resolve to the stretch effect.

    Args:
        effect_type: One of EFFECT_TYPES

    Returns:
        Shared strategy instance
    """
    strategy = REGISTRY.get(effect_type) if effect_type is not None else None
    if strategy is None:
        logger.debug("Unknown effect %r, using %s", effect_type, DEFAULT_EFFECT)
        return REGISTRY[DEFAULT_EFFECT]
    return strategy
