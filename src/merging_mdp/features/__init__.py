"""Feature extraction and reconstruction for learning components."""

from merging_mdp.features.codec import (
    FeatureCodec,
    NUM_FEATURES,
    SENTINEL,
    UNOBSERVED_COOPERATION,
)

__all__ = [
    "FeatureCodec",
    "NUM_FEATURES",
    "SENTINEL",
    "UNOBSERVED_COOPERATION",
]
