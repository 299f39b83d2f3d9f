"""
Tests for NGramGenerator and NGramAggregateProvider.
"""

import pytest

from music_ngrams.generator import NGramAggregateProvider, NGramGenerator, NGramRequestError
from music_ngrams.moments import NOTE_TO_REST, REST_TO_NOTE, VERTICAL_REST
from music_ngrams.representations import Piece, notes_from_tuples

LOW = (0, 0)
HIGH = (1, 0)


def _strings(ngrams):
    return [ngram.string_identifier for ngram in ngrams]


def test_vertical_intervals_substitute_a_sounding_voice_for_a_resting_base(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.vertical_interval_ngrams(3, [LOW, HIGH], base_voice=LOW)
    # Slice 2: the low voice rests, so the high voice becomes the base and
    # the low voice's interval is a rest
    assert [ng.identifier for ng in ngrams] == [
        ((12,), (10,), (VERTICAL_REST,)),
        ((10,), (VERTICAL_REST,), (13,)),
    ]
    assert _strings(ngrams) == ["12 10 128", "10 128 13"]


def test_first_sounding_voice_in_request_order_replaces_a_resting_base():
    bass, tenor, soprano = (0, 0), (1, 0), (2, 0)
    piece = Piece(
        {
            bass: notes_from_tuples([(48, 0, 1), (50, 2, 1)]),
            tenor: notes_from_tuples([(60, 0, 3)]),
            soprano: notes_from_tuples([(67, 0, 1), (69, 1, 1), (71, 2, 1)]),
        }
    )
    generator = NGramGenerator(piece)

    ngrams = generator.vertical_interval_ngrams(1, [bass, tenor, soprano], base_voice=bass)
    # At 1 the bass rests: the tenor becomes the base and the bass is a rest
    assert [ng.identifier for ng in ngrams] == [
        ((12, 19),),
        ((VERTICAL_REST, 9),),
        ((10, 21),),
    ]
    assert _strings(ngrams) == ["1219", "1289", "1021"]

    ngrams = generator.vertical_interval_ngrams(1, [bass, soprano, tenor], base_voice=bass)
    # Same slice with the soprano listed first: it becomes the base instead
    assert [ng.identifier for ng in ngrams] == [
        ((19, 12),),
        ((VERTICAL_REST, -9),),
        ((21, 10),),
    ]
    assert _strings(ngrams) == ["1912", "128-9", "2110"]


def test_vertical_intervals_can_skip_rests_in_base_voice(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.vertical_interval_ngrams(
        3, [LOW, HIGH], base_voice=LOW, ignore_rests_in_base_voice=True
    )
    assert _strings(ngrams) == ["12 10 13"]


def test_vertical_intervals_only_use_slices_with_a_new_onset_in_the_subset():
    piece = Piece(
        {
            LOW: notes_from_tuples([(48, 0, 4)]),
            HIGH: notes_from_tuples([(60, 0, 4)]),
            (2, 0): notes_from_tuples([(72, 0, 1), (74, 1, 1), (76, 2, 1)]),
        }
    )
    generator = NGramGenerator(piece)
    assert generator.vertical_interval_ngrams(1, [LOW, HIGH]) != []
    assert _strings(generator.vertical_interval_ngrams(1, [LOW, HIGH])) == ["12"]
    assert len(generator.vertical_interval_ngrams(1, [LOW, (2, 0)])) == 3


def test_vertical_interval_transforms_leave_rests_alone(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    wrapped = generator.vertical_interval_ngrams(3, [LOW, HIGH], wrapping=True)
    assert wrapped[0].identifier == ((0,), (10,), (VERTICAL_REST,))
    generic = generator.vertical_interval_ngrams(3, [LOW, HIGH], generic_intervals=True)
    assert generic[0].identifier == ((8,), (7,), (VERTICAL_REST,))
    undirected = generator.vertical_interval_ngrams(3, [HIGH, LOW], direction=False)
    assert undirected[0].identifier == ((12,), (10,), (VERTICAL_REST,))


def test_vertical_intervals_from_the_upper_voice_are_negative(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.vertical_interval_ngrams(1, [HIGH, LOW])
    assert [ng.identifier for ng in ngrams] == [
        ((-12,),),
        ((-10,),),
        ((VERTICAL_REST,),),
        ((-13,),),
    ]


def test_melodic_interval_ngrams_do_not_cross_voices(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    assert _strings(generator.melodic_interval_ngrams(2, [LOW, HIGH])) == ["2 2", "4 1"]
    assert _strings(generator.melodic_interval_ngrams(2, [HIGH, LOW])) == ["4 1", "2 2"]
    assert generator.melodic_interval_ngrams(3, [LOW, HIGH]) == []


def test_melodic_interval_transforms():
    piece = Piece({LOW: notes_from_tuples([(72, 0, 1), (58, 1, 1), (61, 2, 1)])})
    generator = NGramGenerator(piece)
    assert _strings(generator.melodic_interval_ngrams(2, [LOW])) == ["-14 3"]
    assert _strings(generator.melodic_interval_ngrams(2, [LOW], wrapping=True)) == ["-2 3"]
    assert _strings(generator.melodic_interval_ngrams(2, [LOW], direction=False, wrapping=True)) == ["2 3"]
    assert _strings(generator.melodic_interval_ngrams(2, [LOW], generic_intervals=True)) == ["-9 3"]


def test_rhythmic_value_ngrams(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    assert _strings(generator.rhythmic_value_ngrams(3, [LOW, HIGH])) == ["1.0 1.0 1.0", "2.0 1.0 1.0"]


def test_vertical_and_melodic_interval_ngrams(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.vertical_and_melodic_interval_ngrams(3, [LOW, HIGH])
    assert len(ngrams) == 2
    first, second = ngrams
    assert first.identifier == ((12,), (10,), (VERTICAL_REST,))
    assert first.secondary_identifier == ((2, 0), (NOTE_TO_REST, 4))
    assert second.secondary_identifier == ((NOTE_TO_REST, 4), (REST_TO_NOTE, 1))
    assert first.string_identifier == "12 20 10 -1284 128"


def test_vertical_and_melodic_ngrams_follow_skipped_slices(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.vertical_and_melodic_interval_ngrams(
        3, [LOW, HIGH], ignore_rests_in_base_voice=True
    )
    assert len(ngrams) == 1
    # Melodic motion is measured between the slices that were kept
    assert ngrams[0].secondary_identifier == ((2, 0), (2, 5))


def test_rhythmic_value_and_melodic_interval_ngrams(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    ngrams = generator.rhythmic_value_and_melodic_interval_ngrams(3, [LOW])
    assert [ng.secondary_identifier for ng in ngrams] == [
        ((2,), (NOTE_TO_REST,)),
        ((NOTE_TO_REST,), (REST_TO_NOTE,)),
    ]
    assert ngrams[0].identifier == ((1.0,), (1.0,), (1.0,))
    wrapped = generator.rhythmic_value_and_melodic_interval_ngrams(
        3, [LOW], direction=False, wrapping=True, generic_intervals=True
    )
    assert wrapped[1].secondary_identifier == ((NOTE_TO_REST,), (REST_TO_NOTE,))


def test_aggregates_pass_on_options(two_voice_piece):
    generator = NGramGenerator(two_voice_piece)
    aggregate = generator.vertical_interval_ngram_aggregate(
        3, [LOW, HIGH], ignore_rests_in_base_voice=True
    )
    assert aggregate.get_normalized_frequency("12 10 13") == 1.0
    aggregate = generator.rhythmic_value_ngram_aggregate(3, [LOW, HIGH], filtering_threshold=0.6)
    assert aggregate.no_ngrams()
    aggregate = generator.melodic_interval_ngram_aggregate(1, [LOW, HIGH], wrapping=True)
    assert aggregate.get_normalized_frequency("2") == 0.5


@pytest.mark.parametrize("n_value", [0, -2, None, 2.0, True])
def test_invalid_n_value(two_voice_piece, n_value):
    with pytest.raises(NGramRequestError):
        NGramGenerator(two_voice_piece).melodic_interval_ngrams(n_value, [LOW])


@pytest.mark.parametrize(
    "voices",
    [None, [], [LOW, LOW], [(5, 5)]],
)
def test_invalid_voices(two_voice_piece, voices):
    with pytest.raises(NGramRequestError):
        NGramGenerator(two_voice_piece).rhythmic_value_ngrams(2, voices)


def test_vertical_requests_need_two_voices(two_voice_piece):
    with pytest.raises(NGramRequestError, match="At least 2"):
        NGramGenerator(two_voice_piece).vertical_interval_ngrams(2, [LOW])


def test_base_voice_must_be_requested():
    piece = Piece(
        {
            LOW: notes_from_tuples([(48, 0, 1)]),
            HIGH: notes_from_tuples([(60, 0, 1)]),
            (2, 0): notes_from_tuples([(72, 0, 1)]),
        }
    )
    with pytest.raises(NGramRequestError, match="Base voice"):
        NGramGenerator(piece).vertical_interval_ngrams(1, [LOW, HIGH], base_voice=(2, 0))


def test_request_errors_are_value_errors(two_voice_piece):
    with pytest.raises(ValueError):
        NGramGenerator(two_voice_piece).melodic_interval_ngrams(0, [LOW])


def test_provider_aggregates(two_voice_piece):
    provider = NGramAggregateProvider(two_voice_piece, n_value=3)
    assert provider.melodic_interval_ngram_aggregate.no_ngrams()
    assert provider.rhythmic_value_ngram_aggregate.number_of_unique_ngrams == 2
    assert provider.complete_vertical_interval_ngram_aggregate.total_number_of_ngrams == 2
    assert (
        provider.lowest_and_highest_lines_vertical_interval_ngram_aggregate.most_common_ngram().string_identifier
        == "12 10 128"
    )
    assert provider.lowest_and_highest_lines_vertical_and_melodic_interval_ngram_aggregate.total_number_of_ngrams == 2
    assert provider.rhythmic_value_and_melodic_interval_ngram_in_highest_line_aggregate.total_number_of_ngrams == 1


def test_provider_caches_aggregates(two_voice_piece):
    provider = NGramAggregateProvider(two_voice_piece)
    assert provider.rhythmic_value_ngram_aggregate is provider.rhythmic_value_ngram_aggregate


def test_provider_single_voice_has_empty_vertical_aggregates(alternating_melody):
    provider = NGramAggregateProvider(alternating_melody)
    assert provider.complete_vertical_interval_ngram_aggregate.no_ngrams()
    assert provider.lowest_and_highest_lines_vertical_interval_ngram_aggregate.no_ngrams()
    assert provider.lowest_and_highest_lines_vertical_and_melodic_interval_ngram_aggregate.no_ngrams()
    assert not provider.melodic_interval_ngram_in_lowest_line_aggregate.no_ngrams()


def test_provider_empty_piece():
    provider = NGramAggregateProvider(Piece({}), filtering_threshold=0.1)
    assert provider.melodic_interval_ngram_aggregate.no_ngrams()
    assert provider.rhythmic_value_and_melodic_interval_ngram_in_highest_line_aggregate.no_ngrams()
    assert provider.melodic_interval_ngram_aggregate.filtering_threshold == 0.1


def test_every_aggregate_method_is_documented():
    methods = [name for name in vars(NGramGenerator) if name.endswith("_aggregate")]
    assert len(methods) == 5
    for name in methods:
        assert getattr(NGramGenerator, name).__doc__, name
