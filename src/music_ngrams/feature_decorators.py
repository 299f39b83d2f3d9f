"""
Feature decorators for categorizing n-gram features by source and by the type
of moment they are built from.
"""

from functools import wraps
from typing import Callable


class FeatureSource:
    """Class for easy construction of feature decorators."""
    JSYMBOLIC = "jsymbolic"
    CUSTOM = "custom"


class FeatureType:
    """Type of moment a feature's n-grams are built from."""
    MELODIC = "melodic_interval"
    VERTICAL = "vertical_interval"
    RHYTHMIC = "rhythmic_value"
    VERTICAL_AND_MELODIC = "vertical_and_melodic_interval"
    RHYTHMIC_AND_MELODIC = "rhythmic_value_and_melodic_interval"


def _create_feature_decorator(source: str, citation: str) -> Callable:
    """Create a feature decorator for a specific source."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        wrapper._feature_source = source
        wrapper._feature_citation = citation
        if hasattr(func, "_feature_type"):
            wrapper._feature_type = func._feature_type

        return wrapper
    return decorator


def feature_type(type_name: str) -> Callable:
    """Create a decorator recording which moment type a feature uses."""
    def decorator(func: Callable) -> Callable:
        func._feature_type = type_name
        return func
    return decorator


jsymbolic = _create_feature_decorator(
    FeatureSource.JSYMBOLIC,
    "McKay, C., & Fujinaga, I. (2006). jSymbolic: A Feature Extractor for MIDI Files."
)

novel = _create_feature_decorator(
    FeatureSource.CUSTOM,
    "Novel features do not appear in any of the referenced literature. We introduce them here to extend the contributions of existing feature sets."
)

melodic_ngram_feature = feature_type(FeatureType.MELODIC)
vertical_ngram_feature = feature_type(FeatureType.VERTICAL)
rhythmic_ngram_feature = feature_type(FeatureType.RHYTHMIC)
vertical_and_melodic_ngram_feature = feature_type(FeatureType.VERTICAL_AND_MELODIC)
rhythmic_and_melodic_ngram_feature = feature_type(FeatureType.RHYTHMIC_AND_MELODIC)
