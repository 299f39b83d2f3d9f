"""
A Python package for building n-grams of melodic intervals, vertical intervals
and rhythmic values from polyphonic MIDI, and for computing jSymbolic-style
n-gram features from them.
"""

from .aggregate import (
    EmptyAggregateError,  # noqa: F401
    NGramAggregate,
    aggregate_ngrams,
)
from .features import (
    Config,
    FeatureThresholds,  # noqa: F401
    extract_features,
    get_all_features,
)
from .generator import (
    NGramAggregateProvider,  # noqa: F401
    NGramGenerator,
    NGramRequestError,
)
from .import_mid import import_midi  # noqa: F401
from .moments import NOTE_TO_REST, REST_TO_NOTE, VERTICAL_REST, Rest  # noqa: F401
from .ngram import NGram, NGramError, TwoDimensionalNGram  # noqa: F401
from .representations import Note, Piece  # noqa: F401
