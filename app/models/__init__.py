from .enums import FoodCategory
from .response import PotluckResponse

__all__ = ["FoodCategory", "PotluckResponse"]
