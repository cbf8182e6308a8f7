"""Tests for style spec parsing and style vector blending."""

import numpy as np
import pytest

from fakes import STYLE_TABLE, STYLES
from jtts.errors import EmptySelection, InvalidWeight, StyleError, UnknownStyle
from jtts.style.mixer import StyleMixer
from jtts.style.selection import StyleComponent, StyleSelection, coerce_selection, parse_style_spec


@pytest.fixture
def mixer():
    return StyleMixer(STYLE_TABLE, STYLES)


class TestParseStyleSpec:
    def test_single_style(self):
        spec = parse_style_spec("Happy")
        assert len(spec.components) == 1
        assert spec.components[0].style_id == "Happy"
        assert spec.components[0].weight == 1.0

    def test_row_index(self):
        assert parse_style_spec("2").as_requests() == [(2, 1.0)]

    def test_blend_equal_weights(self):
        spec = parse_style_spec("Happy+Sad")
        assert [c.style_id for c in spec.components] == ["Happy", "Sad"]
        assert [c.weight for c in spec.components] == [1.0, 1.0]

    def test_blend_with_weights(self):
        spec = parse_style_spec("Happy(2)+Sad(1)")
        assert spec.components[0].weight == 2.0
        assert spec.components[1].weight == 1.0

    def test_float_weights(self):
        spec = parse_style_spec("Happy(1.5) + Sad(0.5)")
        assert spec.components[0].weight == 1.5
        assert spec.components[1].weight == 0.5

    def test_non_ascii_names(self):
        assert parse_style_spec("喜び").components[0].style_id == "喜び"

    def test_invalid_spec(self):
        with pytest.raises(ValueError):
            parse_style_spec("Happy(2")

    def test_dangling_plus(self):
        with pytest.raises(ValueError):
            parse_style_spec("Happy+")

    def test_empty(self):
        with pytest.raises(EmptySelection):
            parse_style_spec("   ")

    def test_zero_weights_parse(self):
        assert parse_style_spec("Happy(0)+Sad(0)").as_requests() == [("Happy", 0.0), ("Sad", 0.0)]


class TestCoerceSelection:
    def test_passthrough(self):
        selection = StyleSelection([StyleComponent("Happy")])
        assert coerce_selection(selection) is selection

    def test_int(self):
        assert coerce_selection(1).as_requests() == [(1, 1.0)]

    def test_pairs(self):
        assert coerce_selection([("Happy", 2), ("Sad", 1)]).as_requests() == [("Happy", 2.0), ("Sad", 1.0)]

    def test_empty_pairs(self):
        with pytest.raises(EmptySelection):
            coerce_selection([])


class TestStyleMixer:
    def test_lookup_by_name_and_row(self, mixer):
        np.testing.assert_array_equal(mixer.lookup("Happy"), STYLE_TABLE[1])
        np.testing.assert_array_equal(mixer.lookup(2), STYLE_TABLE[2])
        assert mixer.style_dim == 3

    def test_single_style(self, mixer):
        np.testing.assert_array_equal(mixer.resolve([("Happy", 1.0)]), STYLE_TABLE[1])

    def test_weight_of_single_style_is_irrelevant(self, mixer):
        np.testing.assert_array_equal(mixer.resolve([("Happy", 1.0)]), mixer.resolve([("Happy", 2.0)]))

    def test_result_is_a_copy(self, mixer):
        vector = mixer.resolve([("Happy", 1.0)])
        vector[0] = 100.0
        assert STYLE_TABLE[1, 0] == 1.0

    def test_weighted_average(self, mixer):
        vector = mixer.resolve([("Happy", 3.0), ("Sad", 1.0)])
        np.testing.assert_allclose(vector, 0.75 * STYLE_TABLE[1] + 0.25 * STYLE_TABLE[2], rtol=1e-6)
        assert vector.dtype == np.float32

    def test_resolves_parsed_selection(self, mixer):
        expected = mixer.resolve([("Happy", 2.0), ("Sad", 1.0)])
        np.testing.assert_array_equal(mixer.resolve(parse_style_spec("Happy(2)+Sad(1)")), expected)

    def test_unknown_style(self, mixer):
        with pytest.raises(UnknownStyle) as exc_info:
            mixer.resolve([("Happy", 1.0), ("Angry", 1.0)])
        assert exc_info.value.style_id == "Angry"
        assert isinstance(exc_info.value, StyleError)

    def test_row_out_of_range(self, mixer):
        with pytest.raises(UnknownStyle):
            mixer.lookup(3)

    def test_empty(self, mixer):
        with pytest.raises(EmptySelection):
            mixer.resolve([])

    @pytest.mark.parametrize(
        "requests",
        [
            [("Happy", -1.0), ("Sad", 2.0)],
            [("Happy", 0.0), ("Sad", 0.0)],
            [("Happy", float("nan"))],
            [("Happy", float("inf")), ("Sad", 1.0)],
        ],
    )
    def test_invalid_weights(self, mixer, requests):
        with pytest.raises(InvalidWeight):
            mixer.resolve(requests)

    def test_strength(self, mixer):
        neutral = STYLE_TABLE[0]
        vector = mixer.resolve([("Happy", 1.0)], strength=2.0)
        np.testing.assert_allclose(vector, neutral + (STYLE_TABLE[1] - neutral) * 2.0)

    def test_zero_strength_is_neutral(self, mixer):
        np.testing.assert_array_equal(mixer.resolve([("Sad", 1.0)], strength=0.0), STYLE_TABLE[0])
