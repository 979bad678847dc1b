"""
Style vectors of a voice.

The style file holds a (styles x dimension) matrix whose row 0 is the mean
style. A requested style is interpolated from the mean towards its row.
"""

from typing import List

import numpy as np
from pydantic import BaseModel, ValidationError, model_validator

from ..exceptions import StyleVectorError


class StyleVectorFile(BaseModel):
    """Schema of style_vectors.json."""
    shape: List[int]
    data: List[List[float]]

    @model_validator(mode="after")
    def check_shape(self) -> "StyleVectorFile":
        if len(self.shape) != 2:
            raise ValueError(f"shape must have 2 entries, got {self.shape}")
        rows, cols = self.shape
        if rows < 1 or cols < 1:
            raise ValueError(f"shape must be positive, got {self.shape}")
        if len(self.data) != rows or any(len(row) != cols for row in self.data):
            raise ValueError(f"data does not match shape {self.shape}")
        return self


def load_style(data: bytes) -> np.ndarray:
    """Parse style_vectors.json bytes into a float32 matrix."""
    try:
        parsed = StyleVectorFile.model_validate_json(data)
    except ValidationError as e:
        raise StyleVectorError(f"Invalid style vector file: {e}") from e
    return np.asarray(parsed.data, dtype=np.float32).reshape(parsed.shape)


def get_style_vector(style_vectors: np.ndarray, style_id: int, weight: float) -> np.ndarray:
    """
    Blend style `style_id` with the mean style.

    Returns mean + (style - mean) * weight as a float32 vector.
    """
    if not 0 <= style_id < style_vectors.shape[0]:
        raise StyleVectorError(
            f"Style id {style_id} out of range (0-{style_vectors.shape[0] - 1})"
        )
    mean = style_vectors[0]
    style = style_vectors[style_id]
    return (mean + (style - mean) * weight).astype(np.float32)
