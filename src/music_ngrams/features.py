"""
This module contains functions to compute n-gram features from polyphonic music.
Each feature takes the n-gram aggregate(s) it needs, named after the attributes
of NGramAggregateProvider, and returns a default value when there are no
n-grams to analyze.
"""

import inspect
import logging
import os
import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
from natsort import natsorted
from tqdm import tqdm

from .aggregate import NGramAggregate
from .feature_decorators import (
    jsymbolic,
    novel,
    melodic_ngram_feature,
    rhythmic_and_melodic_ngram_feature,
    rhythmic_ngram_feature,
    vertical_and_melodic_ngram_feature,
    vertical_ngram_feature,
)
from .generator import NGramAggregateProvider
from .import_mid import import_midi
from .representations import Piece

# All features in this module are computed on 3-grams
NGRAM_LENGTH = 3

MIDI_EXTENSIONS = (".mid", ".midi")


def _setup_logger(level: int = logging.INFO) -> logging.Logger:
    """Set up and configure the logger for the n-gram feature set.

    Parameters
    ----------
    level : int
        Logging level (default: logging.INFO)

    Returns
    -------
    logging.Logger
        Configured logger instance
    """
    logger = logging.getLogger("music_ngrams")
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
        )
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger


@dataclass
class FeatureThresholds:
    """Frequency thresholds used by the common and rare n-gram features.

    Parameters
    ----------
    common_vertical_threshold : float
        Minimum frequency of a common lowest and highest lines vertical interval 3-gram
    very_common_vertical_threshold : float
        Minimum frequency of a very common complete vertical interval 3-gram
    rare_vertical_threshold : float
        Maximum frequency of a rare complete vertical interval 3-gram
    common_rhythmic_threshold : float
        Minimum frequency of a common rhythmic value 3-gram
    very_common_melodic_threshold : float
        Minimum frequency of a very common melodic interval 3-gram
    """

    common_vertical_threshold: float = 0.04
    very_common_vertical_threshold: float = 0.02
    rare_vertical_threshold: float = 0.005
    common_rhythmic_threshold: float = 0.09
    very_common_melodic_threshold: float = 0.15

    def __post_init__(self):
        """Validate the configuration after initialization."""
        for threshold in fields(self):
            value = getattr(self, threshold.name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"{threshold.name} must be a number, got {type(value)}")
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{threshold.name} must be between 0 and 1, got {value}")


@dataclass
class Config:
    """Configuration class for the feature set.

    Parameters
    ----------
    filtering_threshold : float
        N-gram types occurring less often than this fraction of all n-grams
        are left out of every aggregate before frequencies are computed.
        0 keeps every n-gram.
    thresholds : FeatureThresholds
        Thresholds used by the common and rare n-gram features.
    """

    filtering_threshold: float = 0.0
    thresholds: FeatureThresholds = field(default_factory=FeatureThresholds)

    def __post_init__(self):
        """Validate the configuration after initialization."""
        if not isinstance(self.filtering_threshold, (int, float)) or isinstance(
            self.filtering_threshold, bool
        ):
            raise ValueError(
                f"filtering_threshold must be a number, got {type(self.filtering_threshold)}"
            )
        if not 0.0 <= self.filtering_threshold < 1.0:
            raise ValueError(
                f"filtering_threshold must be in [0, 1), got {self.filtering_threshold}"
            )
        if not isinstance(self.thresholds, FeatureThresholds):
            raise ValueError(
                f"thresholds must be a FeatureThresholds object, got {type(self.thresholds)}"
            )


def _zero_vector() -> list[float]:
    return [0.0] * NGRAM_LENGTH


# Melodic interval features
@jsymbolic
@melodic_ngram_feature
def most_common_melodic_interval_3gram_type_in_lowest_line(
    melodic_interval_ngram_in_lowest_line_aggregate: NGramAggregate,
) -> list[float]:
    """The melodic interval 3-gram that occurs most often in the lowest line.

    Parameters
    ----------
    melodic_interval_ngram_in_lowest_line_aggregate : NGramAggregate
        Melodic interval 3-grams of the voice with the lowest average pitch

    Returns
    -------
    list[float]
        The three intervals in semitones, in the order they occur, or
        [0, 0, 0] if there are no melodic interval 3-grams
    """
    aggregate = melodic_interval_ngram_in_lowest_line_aggregate
    if aggregate.no_ngrams():
        return _zero_vector()
    return aggregate.most_common_ngram().to_vector()


@jsymbolic
@melodic_ngram_feature
def prevalence_of_most_common_melodic_interval_3gram_type_in_lowest_line(
    melodic_interval_ngram_in_lowest_line_aggregate: NGramAggregate,
) -> float:
    """Fraction of melodic interval 3-grams in the lowest line that are of
    the most common type.

    Parameters
    ----------
    melodic_interval_ngram_in_lowest_line_aggregate : NGramAggregate
        Melodic interval 3-grams of the voice with the lowest average pitch

    Returns
    -------
    float
        Normalized frequency of the most common 3-gram, or 0.0 if there are
        no melodic interval 3-grams
    """
    aggregate = melodic_interval_ngram_in_lowest_line_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.get_normalized_frequency(aggregate.most_common_ngram())


@jsymbolic
@melodic_ngram_feature
def prevalence_of_median_melodic_interval_3gram_type_in_lowest_line(
    melodic_interval_ngram_in_lowest_line_aggregate: NGramAggregate,
) -> float:
    """Fraction of melodic interval 3-grams in the lowest line that are of
    the type with the median prevalence. 0.0 if there are none.
    """
    aggregate = melodic_interval_ngram_in_lowest_line_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.median_frequency()


@novel
@melodic_ngram_feature
def most_common_melodic_interval_3gram_type_in_highest_line(
    melodic_interval_ngram_in_highest_line_aggregate: NGramAggregate,
) -> list[float]:
    """The melodic interval 3-gram that occurs most often in the highest line,
    or [0, 0, 0] if there are none.
    """
    aggregate = melodic_interval_ngram_in_highest_line_aggregate
    if aggregate.no_ngrams():
        return _zero_vector()
    return aggregate.most_common_ngram().to_vector()


@jsymbolic
@melodic_ngram_feature
def prevalence_of_very_common_melodic_interval_3gram_types(
    melodic_interval_ngram_aggregate: NGramAggregate,
    very_common_melodic_threshold: float = 0.15,
) -> float:
    """Proportion of melodic interval 3-gram types that are very common.

    Parameters
    ----------
    melodic_interval_ngram_aggregate : NGramAggregate
        Melodic interval 3-grams of every voice
    very_common_melodic_threshold : float
        Minimum frequency of a very common type (default: 0.15)

    Returns
    -------
    float
        Number of types that each account for at least the threshold of all
        melodic interval 3-grams, divided by the number of unique types.
        0.0 if there are no melodic interval 3-grams.
    """
    aggregate = melodic_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    very_common = aggregate.number_of_ngrams_at_or_above(very_common_melodic_threshold)
    return very_common / aggregate.number_of_unique_ngrams


@novel
@melodic_ngram_feature
def melodic_interval_3gram_type_entropy(
    melodic_interval_ngram_aggregate: NGramAggregate,
) -> float:
    """Shannon entropy (bits) of the melodic interval 3-gram type distribution."""
    aggregate = melodic_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.entropy()


# Rhythmic value features
@jsymbolic
@rhythmic_ngram_feature
def second_most_common_rhythmic_value_3gram_type(
    rhythmic_value_ngram_aggregate: NGramAggregate,
) -> list[float]:
    """The rhythmic value 3-gram that occurs second most often.

    Parameters
    ----------
    rhythmic_value_ngram_aggregate : NGramAggregate
        Rhythmic value 3-grams of every voice

    Returns
    -------
    list[float]
        The three rhythmic values as fractions of a quarter note, or
        [0, 0, 0] if there are fewer than two rhythmic value 3-gram types
    """
    aggregate = rhythmic_value_ngram_aggregate
    if aggregate.number_of_unique_ngrams < 2:
        return _zero_vector()
    return aggregate.second_most_common_ngram().to_vector()


@jsymbolic
@rhythmic_ngram_feature
def prevalence_of_second_most_common_rhythmic_value_3gram_type(
    rhythmic_value_ngram_aggregate: NGramAggregate,
) -> float:
    """Fraction of rhythmic value 3-grams of the second most common type.
    0.0 if there are fewer than two types.
    """
    aggregate = rhythmic_value_ngram_aggregate
    if aggregate.number_of_unique_ngrams < 2:
        return 0.0
    return aggregate.get_normalized_frequency(aggregate.second_most_common_ngram())


@jsymbolic
@rhythmic_ngram_feature
def prevalence_of_median_rhythmic_value_3gram_type(
    rhythmic_value_ngram_aggregate: NGramAggregate,
) -> float:
    """Fraction of rhythmic value 3-grams of the type with the median
    prevalence. 0.0 if there are none.
    """
    aggregate = rhythmic_value_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.median_frequency()


@jsymbolic
@rhythmic_ngram_feature
def prevalence_of_common_rhythmic_value_3gram_types(
    rhythmic_value_ngram_aggregate: NGramAggregate,
    common_rhythmic_threshold: float = 0.09,
) -> float:
    """Number of rhythmic value 3-gram types that each account for at least
    the threshold of all rhythmic value 3-grams, divided by the number of
    unique types. 0.0 if there are none.
    """
    aggregate = rhythmic_value_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    common = aggregate.number_of_ngrams_at_or_above(common_rhythmic_threshold)
    return common / aggregate.number_of_unique_ngrams


@jsymbolic
@rhythmic_ngram_feature
def prevalence_of_rhythmic_value_3gram_types_occurring_only_once(
    rhythmic_value_ngram_aggregate: NGramAggregate,
) -> float:
    """Number of rhythmic value 3-gram types that occur exactly once, divided
    by the number of unique types. 0.0 if there are none.
    """
    aggregate = rhythmic_value_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.number_of_ngrams_occurring_once() / aggregate.number_of_unique_ngrams


@novel
@rhythmic_ngram_feature
def number_of_rhythmic_value_3gram_types(
    rhythmic_value_ngram_aggregate: NGramAggregate,
) -> int:
    """Number of different rhythmic value 3-grams."""
    return rhythmic_value_ngram_aggregate.number_of_unique_ngrams


# Vertical interval features
@jsymbolic
@vertical_ngram_feature
def number_of_rare_vertical_interval_3gram_types(
    complete_vertical_interval_ngram_aggregate: NGramAggregate,
    rare_vertical_threshold: float = 0.005,
) -> float:
    """Number of complete vertical interval 3-gram types that each account for
    at most the threshold of all complete vertical interval 3-grams.

    Parameters
    ----------
    complete_vertical_interval_ngram_aggregate : NGramAggregate
        Vertical interval 3-grams between the lowest line and every other voice
    rare_vertical_threshold : float
        Maximum frequency of a rare type (default: 0.005)

    Returns
    -------
    float
        Number of rare types, or 0.0 if there are no vertical interval 3-grams
    """
    aggregate = complete_vertical_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return float(aggregate.number_of_ngrams_at_or_below(rare_vertical_threshold))


@jsymbolic
@vertical_ngram_feature
def prevalence_of_very_common_vertical_interval_3gram_types(
    complete_vertical_interval_ngram_aggregate: NGramAggregate,
    very_common_vertical_threshold: float = 0.02,
) -> float:
    """Number of complete vertical interval 3-gram types that each account for
    at least the threshold of all of them, divided by the number of unique
    types. 0.0 if there are none (e.g. music with a single voice).
    """
    aggregate = complete_vertical_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    very_common = aggregate.number_of_ngrams_at_or_above(very_common_vertical_threshold)
    return very_common / aggregate.number_of_unique_ngrams


@jsymbolic
@vertical_ngram_feature
def number_of_common_vertical_interval_3gram_types_between_lowest_and_highest_lines(
    lowest_and_highest_lines_vertical_interval_ngram_aggregate: NGramAggregate,
    common_vertical_threshold: float = 0.04,
) -> float:
    """Number of lowest and highest lines vertical interval 3-gram types that
    each account for at least the threshold of all of them. 0.0 if there are none.
    """
    aggregate = lowest_and_highest_lines_vertical_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return float(aggregate.number_of_ngrams_at_or_above(common_vertical_threshold))


@novel
@vertical_ngram_feature
def most_common_vertical_interval_3gram_type_between_lowest_and_highest_lines(
    lowest_and_highest_lines_vertical_interval_ngram_aggregate: NGramAggregate,
) -> list[float]:
    """The most common vertical interval 3-gram between the lowest and highest
    lines. A rest in either line is 128. [0, 0, 0] if there are none.
    """
    aggregate = lowest_and_highest_lines_vertical_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return _zero_vector()
    return aggregate.most_common_ngram().to_vector()


@jsymbolic
@vertical_ngram_feature
def second_most_common_vertical_interval_3gram_type_between_lowest_and_highest_lines(
    lowest_and_highest_lines_vertical_interval_ngram_aggregate: NGramAggregate,
) -> list[float]:
    """The second most common vertical interval 3-gram between the lowest and
    highest lines. A rest in either line is 128. [0, 0, 0] if there are fewer
    than two types.
    """
    aggregate = lowest_and_highest_lines_vertical_interval_ngram_aggregate
    if aggregate.number_of_unique_ngrams < 2:
        return _zero_vector()
    return aggregate.second_most_common_ngram().to_vector()


# Two-dimensional features
@novel
@vertical_and_melodic_ngram_feature
def prevalence_of_most_common_vertical_and_melodic_interval_3gram_type(
    lowest_and_highest_lines_vertical_and_melodic_interval_ngram_aggregate: NGramAggregate,
) -> float:
    """Fraction of lowest and highest lines vertical interval 3-grams, together
    with the melodic motion linking them, that are of the most common type.
    0.0 if there are none.
    """
    aggregate = lowest_and_highest_lines_vertical_and_melodic_interval_ngram_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.get_normalized_frequency(aggregate.most_common_ngram())


@novel
@rhythmic_and_melodic_ngram_feature
def prevalence_of_most_common_rhythmic_value_and_melodic_interval_3gram_type_in_highest_line(
    rhythmic_value_and_melodic_interval_ngram_in_highest_line_aggregate: NGramAggregate,
) -> float:
    """Fraction of rhythmic value 3-grams in the highest line, together with
    the melodic intervals linking them, that are of the most common type.
    0.0 if there are none.
    """
    aggregate = rhythmic_value_and_melodic_interval_ngram_in_highest_line_aggregate
    if aggregate.no_ngrams():
        return 0.0
    return aggregate.get_normalized_frequency(aggregate.most_common_ngram())


def _get_features_by_source(source: Optional[str] = None) -> Dict[str, callable]:
    """Return the feature functions in this module, optionally from one source only."""
    features = {}
    for name, obj in globals().items():
        if callable(obj) and hasattr(obj, "_feature_source"):
            if source is None or obj._feature_source == source:
                features[name] = obj
    return features


def _get_features_by_type(type_name: str) -> Dict[str, callable]:
    """Return the feature functions in this module built from one moment type."""
    return {
        name: func
        for name, func in _get_features_by_source().items()
        if getattr(func, "_feature_type", None) == type_name
    }


def get_ngram_features(provider: NGramAggregateProvider, config: Optional[Config] = None) -> Dict:
    """Compute every n-gram feature from the aggregates of one piece.

    Parameters
    ----------
    provider : NGramAggregateProvider
        Supplies the aggregates named by each feature's parameters
    config : Config, optional
        Supplies the feature thresholds (default: Config())

    Returns
    -------
    Dict
        Mapping from feature name to value
    """
    config = config or Config()
    threshold_names = {threshold.name for threshold in fields(config.thresholds)}
    computed_features = {}

    for name, func in _get_features_by_source().items():
        args = []
        for param in inspect.signature(func).parameters.values():
            if param.name.endswith("_aggregate") and hasattr(provider, param.name):
                args.append(getattr(provider, param.name))
            elif param.name in threshold_names:
                args.append(getattr(config.thresholds, param.name))
            elif param.default is not inspect.Parameter.empty:
                args.append(param.default)
            else:
                raise ValueError(f"Unknown parameter for {name}: {param.name}")
        computed_features[name] = func(*args)

    return computed_features


def extract_features(piece: Piece, config: Optional[Config] = None) -> Dict:
    """Compute every n-gram feature for a single piece.

    Parameters
    ----------
    piece : Piece
        The piece to analyze
    config : Config, optional
        Feature set configuration (default: Config())

    Returns
    -------
    Dict
        Mapping from feature name to value
    """
    config = config or Config()
    provider = NGramAggregateProvider(
        piece, n_value=NGRAM_LENGTH, filtering_threshold=config.filtering_threshold
    )
    return get_ngram_features(provider, config)


def process_midi_file(args) -> tuple:
    """Extract the features of one MIDI file.

    Parameters
    ----------
    args : tuple
        Tuple containing (midi_file, config)

    Returns
    -------
    tuple
        Tuple containing (piece_id, feature_dict, error). feature_dict is None
        and error describes the problem if the file could not be processed.
    """
    midi_file, config = args
    piece_id = os.path.basename(midi_file)
    try:
        midi_data = import_midi(midi_file)
        if midi_data is None:
            return piece_id, None, "could not be imported"
        piece = Piece.from_midi_data(midi_data)
        return piece_id, extract_features(piece, config), None
    except Exception as e:
        return piece_id, None, f"{type(e).__name__}: {e}"


def _collect_midi_files(input: Union[os.PathLike, List[os.PathLike]]) -> List[str]:
    """Resolve a MIDI file, a directory of MIDI files, or a list of either."""
    logger = logging.getLogger("music_ngrams")

    if isinstance(input, (str, os.PathLike)):
        paths = [input]
    else:
        paths = list(input)

    midi_files = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            midi_files.extend(
                str(p) for p in path.iterdir() if p.suffix.lower() in MIDI_EXTENSIONS
            )
        elif path.is_file() and path.suffix.lower() in MIDI_EXTENSIONS:
            midi_files.append(str(path))
        elif path.is_file():
            logger.warning(f"Skipping non-MIDI file: {path}")
        else:
            logger.warning(f"Skipping invalid file path: {path}")

    return natsorted(midi_files)


def get_all_features(
    input: Union[os.PathLike, List[os.PathLike]],
    config: Optional[Config] = None,
    log_level: int = logging.INFO,
    n_jobs: Optional[int] = None,
) -> pd.DataFrame:
    """Calculate every n-gram feature for each MIDI file in the input.

    The input can be:
    - A directory path containing MIDI files
    - A list of MIDI file paths
    - A single MIDI file path

    Files that cannot be processed are logged and left out of the result.

    Parameters
    ----------
    input : Union[os.PathLike, List[os.PathLike]]
        Path to input MIDI directory, list of MIDI file paths, or single MIDI file path
    config : Config, optional
        Configuration object (default: Config())
    log_level : int
        Logging level (default: logging.INFO)
    n_jobs : int, optional
        Number of worker processes. None uses every CPU core, 1 processes the
        files sequentially.

    Returns
    -------
    pd.DataFrame
        A pandas DataFrame with a row for every processed file, containing a
        piece_id column and one column per feature.
    """
    logger = _setup_logger(log_level)
    config = config or Config()
    if not isinstance(config, Config):
        raise ValueError(f"config must be a Config object, got {type(config)}")

    logger.info("Starting feature extraction job...")
    start_time = time.time()

    midi_files = _collect_midi_files(input)
    if not midi_files:
        logger.warning("No MIDI files found to process.")
        return pd.DataFrame()

    logger.info(f"Processing {len(midi_files)} MIDI files")
    file_args = [(midi_file, config) for midi_file in midi_files]
    results = []

    progress = dict(
        total=len(file_args),
        unit="file",
        ncols=80,
        mininterval=0.5,
        bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]",
    )

    if n_jobs == 1 or len(file_args) == 1:
        with tqdm(desc="Processing files (sequential)", **progress) as pbar:
            for args in file_args:
                results.append(process_midi_file(args))
                pbar.update(1)
    else:
        from multiprocessing import Pool, cpu_count

        n_cores = n_jobs or cpu_count()
        logger.info(f"Using {n_cores} CPU cores")
        chunk_size = max(1, len(file_args) // (n_cores * 4))
        with Pool(n_cores) as pool:
            with tqdm(desc="Processing files", **progress) as pbar:
                for result in pool.imap(process_midi_file, file_args, chunksize=chunk_size):
                    results.append(result)
                    pbar.update(1)

    rows = []
    for piece_id, features, error in results:
        if features is None:
            logger.error(f"Error processing {piece_id}: {error}")
            continue
        rows.append({"piece_id": piece_id, **features})

    if not rows:
        logger.warning("No features were successfully extracted from any files")
        return pd.DataFrame()

    df = pd.DataFrame(rows)

    logger.info(f"Total processing time: {time.time() - start_time:.2f} seconds")
    logger.info(f"Successfully extracted features for {len(df)} files")

    return df
