"""
Tests for kotone/model/style.py
"""

import json

import numpy as np
import pytest

from kotone.exceptions import StyleVectorError
from kotone.model.style import get_style_vector, load_style


class TestLoadStyle:
    def test_parses_matrix(self, style_bytes):
        vectors = load_style(style_bytes)
        assert vectors.shape == (3, 4)
        assert vectors.dtype == np.float32
        np.testing.assert_array_equal(vectors[2], [-1.0, 0.0, 1.0, 2.0])

    def test_malformed_json(self):
        with pytest.raises(StyleVectorError):
            load_style(b"{not json")

    def test_missing_field(self):
        with pytest.raises(StyleVectorError):
            load_style(json.dumps({"shape": [1, 2]}).encode())

    def test_shape_mismatch(self):
        data = json.dumps({"shape": [2, 2], "data": [[0.0, 1.0]]}).encode()
        with pytest.raises(StyleVectorError, match="does not match"):
            load_style(data)

    def test_ragged_rows(self):
        data = json.dumps({"shape": [2, 2], "data": [[0.0, 1.0], [1.0]]}).encode()
        with pytest.raises(StyleVectorError):
            load_style(data)


class TestGetStyleVector:
    @pytest.fixture
    def vectors(self, style_bytes):
        return load_style(style_bytes)

    def test_mean_style(self, vectors):
        np.testing.assert_array_equal(get_style_vector(vectors, 0, 1.0), np.zeros(4))

    def test_full_weight(self, vectors):
        np.testing.assert_allclose(get_style_vector(vectors, 2, 1.0), [-1.0, 0.0, 1.0, 2.0])

    def test_interpolates(self, vectors):
        np.testing.assert_allclose(get_style_vector(vectors, 1, 0.5), [0.5] * 4)

    def test_zero_weight_is_mean(self, vectors):
        np.testing.assert_array_equal(get_style_vector(vectors, 2, 0.0), vectors[0])

    def test_dtype(self, vectors):
        assert get_style_vector(vectors, 1, 2.0).dtype == np.float32

    @pytest.mark.parametrize("style_id", [-1, 3])
    def test_out_of_range(self, vectors, style_id):
        with pytest.raises(StyleVectorError, match="out of range"):
            get_style_vector(vectors, style_id, 1.0)
