from .shape import DataShape, describe_shape, shape_of_model

__all__ = [
    "DataShape",
    "describe_shape",
    "shape_of_model",
]
